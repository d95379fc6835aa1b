from .base import LogFetcher
from .codec import decode_log_root, encode_log_root
from .http import HTTPLogClient

__all__ = ["LogFetcher", "HTTPLogClient", "encode_log_root", "decode_log_root"]
