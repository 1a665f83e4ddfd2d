"""Flask application subclass carrying the service container."""

from flask import Flask

from partswap.services.container import ServiceContainer


class App(Flask):
    """Flask app with a typed ``container`` attribute."""

    container: ServiceContainer
