"""flagfix: fixed-point resolver for build-time feature flags.

Declares build options, the implication / conflict / fallback rules between
them and per-application profiles, and resolves each profile to a complete,
consistent on/off assignment for the downstream build.
"""

from loguru import logger

__version__ = "0.1.0"

# Library code stays quiet until the CLI (or the caller) enables it.
logger.disable("flagfix")
