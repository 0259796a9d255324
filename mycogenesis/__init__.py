"""MYCOgenesis 콘텐츠 서비스"""

__version__ = "1.0.0"
