# SPDX-License-Identifier: MIT
"""Constants used throughout elective-sync.

- **Cache settings**: default TTL and key limits
- **Force-refresh flags**: the well-known one-shot sentinel names
- **Record Store defaults**: timeouts, retries and realtime heartbeat
"""

# Cache settings
DEFAULT_CACHE_TTL_MINUTES: int = 60
MAX_CACHE_KEY_LENGTH: int = 255

# Value stored under a force-refresh flag
FORCE_REFRESH_FLAG_VALUE: str = "true"

# Well-known force-refresh flags, one per list type
FORCE_REFRESH_STUDENT_COURSES: str = "forceRefreshStudentCourses"
FORCE_REFRESH_EXCHANGE_LIST: str = "forceRefreshExchangeList"

# Record Store defaults
DEFAULT_RECORD_STORE_SCHEMA: str = "public"
DEFAULT_RECORD_STORE_TIMEOUT: float = 30.0
DEFAULT_RECORD_STORE_MAX_RETRIES: int = 2

# Realtime defaults
DEFAULT_REALTIME_HEARTBEAT_SECONDS: float = 30.0
DEFAULT_REALTIME_RECONNECT_RETRIES: int = 5
DEFAULT_REALTIME_RECONNECT_DELAY: float = 1.0
REALTIME_PROTOCOL_VERSION: str = "1.0.0"
