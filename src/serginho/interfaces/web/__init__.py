from serginho.interfaces.web.server import WebInterface, create_app

__all__ = ["WebInterface", "create_app"]
