from .callbacks import import_string, maybe_await

__all__ = ["import_string", "maybe_await"]
