"""Transcript Bridge - webhook-driven bridge between a remote call-center
audio service and local transcript storage.

Modules:
- webhooks: callback verification, classification and routing
- operations: remote submissions and transcript download
- service: remote service client
- api: FastAPI application
- cli: command-line entry point
"""

__version__ = "1.0.0"
