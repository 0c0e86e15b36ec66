"""
                        Services Module

Contains the network layer with the hybrid architecture pattern.
The network service talks either to a Mock backend (development) or the
Real API (staging/production).

Services:
    - network: REST client, multipart forms, mock backend
"""

from menucraft.services.network import get_network_service

__all__ = ["get_network_service"]
