from hardlevel.api.routes import router

__all__ = ["router"]
