from .pool import close_pool, get_pool, init_pool, is_pool_initialized, reset_pool

__all__ = ["init_pool", "get_pool", "close_pool", "reset_pool", "is_pool_initialized"]
