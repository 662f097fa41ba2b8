"""
Configuration management subsystem for autoclick.

- **config.py**: Static configuration from environment variables (.env support)
- **manager.py**: Tunable configuration from YAML files with dot-notation access
- **errors.py**: Domain-specific exception hierarchy

The logging subsystem reads `Config` at import time, so this package only
re-exports the static pieces; import `ConfigManager` from
`autoclick.core.config.manager`.

Usage Examples
--------------
```python
from autoclick.core.config import Config
from autoclick.core.config.manager import ConfigManager

Config.validate()
manager = ConfigManager()
manager.initialize()
quality = manager.get("tutorial.scenario.detection_quality", 600)
```
"""

from autoclick.core.config.config import Config, Environment
from autoclick.core.config.errors import (
    ConfigError,
    ConfigInitializationError,
    ConfigValidationError,
)

__all__ = [
    "Config",
    "Environment",
    "ConfigError",
    "ConfigValidationError",
    "ConfigInitializationError",
]
