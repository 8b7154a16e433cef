"""totpkeeper: TOTP/HOTP credential manager (core pipeline, token store, HTTP API, CLI)."""

__version__ = "0.1.0"
