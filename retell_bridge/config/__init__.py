"""
Configuration module for the Retell voice bridge.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based configuration.

Key components:
- constants: Protocol names, canned utterances and defaults shared across modules.
- logging_config: Console and rotating file logging for the ``retell_bridge`` logger.
- settings: The ``BridgeConfig`` model and ``load_config()``, which reads the
  environment (and an optional ``.env`` file).

Usage examples:
```python
from retell_bridge.config.logging_config import configure_logging
from retell_bridge.config.settings import load_config

logger = configure_logging()
config = load_config()
logger.info(f"Listening on port {config.websocket.port}")
```
"""
