"""HTTP middleware: path-aware CORS and request ID / access log.

Applied in main app; the last one added runs outermost.
"""

from app.middleware.cors import PathCORSMiddleware
from app.middleware.request_id import RequestIDMiddleware

__all__ = ["PathCORSMiddleware", "RequestIDMiddleware"]
