__version__ = "0.1.0"
__description__ = "sqlafill : fill, validate and serialize SqlAlchemy entity graphs from json payloads"
