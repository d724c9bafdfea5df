"""
Configuration subsystem for Animarc.

- **config.py**: Static configuration from environment variables (python-dotenv)
- **config_manager.py**: Game balance tunables loaded from YAML (PyYAML)

``ConfigManager`` is imported from its own module because it depends on the
logging subsystem, which itself reads ``Config``.
"""

from animarc.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
