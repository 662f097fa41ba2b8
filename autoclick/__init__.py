"""
autoclick: tutorial session coordination for the auto clicker application.

Subpackages
-----------
- autoclick.core: configuration, logging, events, state streams, container
- autoclick.modules: scenario vocabulary and the tutorial module
"""

__version__ = "1.0.0"
