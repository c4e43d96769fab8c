from .config import Config, parse_threshold

__all__ = ['Config', 'parse_threshold']
