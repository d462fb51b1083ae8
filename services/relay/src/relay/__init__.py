"""
CareAlert relay service.

Accepts alert submissions from senders over WebSocket, stamps and stores
them in a bounded history, and broadcasts them to every connected
observer.
"""
