"""Query execution services, response mapping and error taxonomy."""
