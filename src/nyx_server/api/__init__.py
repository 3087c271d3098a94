"""HTTP and WebSocket API of the Nyx server."""
