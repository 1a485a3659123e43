from unwind_backend.core.config import settings
