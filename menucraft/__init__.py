"""
                        MenuCraft Client

Async client for the multi-tenant restaurant & menu management API:
restaurants, branches, menu items with 3D dish models and a persisted
user session, exposed through UI-agnostic view-models and a CLI.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
