"""
Core infrastructure layer for autoclick.

- Configuration (Config, ConfigManager)
- Logging (structured logging, LogContext)
- EventBus (tutorial lifecycle notifications)
- State streams (observable UI state)
- BackgroundDispatcher (blocking store calls off the event loop)
- ServiceContainer (explicit wiring of services)

Feature modules import from the concrete submodules; this package performs
no imports of its own so that `autoclick.core.config` can be loaded first.
"""
