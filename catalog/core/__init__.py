"""Catalog core: errors, locale resolution and the runtime context."""
