"""Flask echo service for exercising clients and transports.

This package is an **optional** extra; install with::

    pip install stream-http[web]

``create_app`` in ``app.py`` returns an app that answers every request
with a JSON description of what it received, so a test can send a
``Request`` through ``WsgiTransport`` and check exactly what arrived.
"""
