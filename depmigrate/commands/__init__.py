"""CLI command implementations for depmigrate."""
