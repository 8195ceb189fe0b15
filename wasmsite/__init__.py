"""Configuration, cargo commands and site output for web projects with a WASM front end and a native server."""

__version__ = "0.1.0"