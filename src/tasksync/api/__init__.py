"""
Adapters for the outside world:
- http_client.py: REST auth / tasks / users (httpx)
- push_client.py: Socket.IO change notifications
- credential_store.py: where the bearer credential is kept between runs
"""
