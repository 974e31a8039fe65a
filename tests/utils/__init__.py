"""
Test utilities package for ts-reconcile tests.

## Available Modules

### catalog_helpers.py
Builders for candidates and catalogs, and a context manager for temporary
YAML configuration files:
- `candidate()`: Build a ScannedMessage from keyword arguments
- `make_message()`: Build a Message with sensible defaults
- `catalog_with()`: Build a Catalog from messages
- `create_temp_config_file()`: Context manager for temporary YAML config files
"""
