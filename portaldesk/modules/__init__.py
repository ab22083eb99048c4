from .jsonlite_data import JsonLiteManager

__all__ = [
    'JsonLiteManager'
]
