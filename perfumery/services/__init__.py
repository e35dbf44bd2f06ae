"""Service layer shared by the blueprints."""
