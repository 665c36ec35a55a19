__version__ = "0.1.0"
__author__ = "yafo-ai"
__description__ = "SQLAlchemy 模型排序库"
