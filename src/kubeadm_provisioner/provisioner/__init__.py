"""Provisioner components.

- Settings loaded from .env
- Structured logging
- The workflow engine and its transports
- Kubernetes manifest delivery
- A small CLI surface
"""
