"""DuckDB persistence: schema, Market Store, automation config and logs."""
