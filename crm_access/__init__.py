"""Role-based access control for the CRM."""
