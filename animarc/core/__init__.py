"""
Core infrastructure layer for Animarc.

- Configuration management (Config, ConfigManager)
- Database subsystem (DatabaseService, declarative Base)
- Logging (structured logging, logger factory)
- Infrastructure exceptions

Submodules are imported directly (``animarc.core.config.config_manager``,
``animarc.core.database.service``); this package performs no re-exports so
importing it has no side effects beyond the package itself.
"""
