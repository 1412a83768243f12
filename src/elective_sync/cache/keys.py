# SPDX-License-Identifier: MIT
"""Cache key builders.

Every dimension that changes a query's result set must appear in its key,
otherwise two logical queries share one slot and overwrite each other.
Views build keys only through these functions.

Keys for the manager detail pages and the student exchange detail page are
scoped by pack id alone. Packs are visible to more than one group, so two
groups can share those slots; see DESIGN.md before adding group scoping.
"""

from ..constants import MAX_CACHE_KEY_LENGTH


# List-level keys (admin pages)
ADMIN_COURSES_KEY = "admin_courses_cache"
ADMIN_DEGREES_KEY = "admin_degrees_cache"
ADMIN_GROUPS_KEY = "admin_groups_cache"
ADMIN_ACADEMIC_YEARS_KEY = "admin_academic_years_cache"
ADMIN_UNIVERSITIES_KEY = "admin_universities_cache"
ADMIN_COUNTRIES_KEY = "admin_countries_cache"
ADMIN_USERS_KEY = "admin_users_cache"
ADMIN_DASHBOARD_STATS_KEY = "admin_dashboard_stats_cache"
ADMIN_COURSE_ELECTIVES_KEY = "adminCourseElectives"
ADMIN_EXCHANGE_PROGRAMS_KEY = "admin_exchange_programs"


def validate_key(key: str) -> str:
    """Check that ``key`` is usable as a cache key.

    Raises:
        ValueError: If the key is empty or exceeds the maximum length
    """
    if not key or not key.strip():
        raise ValueError("Cache key cannot be empty")
    if len(key) > MAX_CACHE_KEY_LENGTH:
        raise ValueError(
            f"Cache key exceeds maximum length ({MAX_CACHE_KEY_LENGTH} characters)"
        )
    return key


KEY_SEPARATOR = "_"


def _build(prefix: str, *parts: str | int) -> str:
    values = []
    for part in parts:
        value = str(part).strip()
        if not value:
            raise ValueError(f"Empty identifier in '{prefix}' cache key")
        if KEY_SEPARATOR in value:
            raise ValueError(
                f"Identifier '{value}' in '{prefix}' cache key "
                f"contains the separator '{KEY_SEPARATOR}'"
            )
        values.append(value)
    return validate_key(KEY_SEPARATOR.join([prefix, *values]))


def student_courses_key(group_id: str | int) -> str:
    """Course packs visible to a group."""
    return _build("studentElectiveCourses", group_id)


def student_course_selections_key(group_id: str | int) -> str:
    """All course selections listed on a group's course page."""
    return _build("studentCourseSelections", group_id)


def student_course_detail_key(group_id: str | int, pack_id: str | int) -> str:
    """One course pack as shown to a group."""
    return _build("studentCourseDetail", group_id, pack_id)


def student_course_selection_key(group_id: str | int, pack_id: str | int) -> str:
    """The current student's selection for one course pack."""
    return _build("studentCourseSelection", group_id, pack_id)


def student_exchange_detail_key(pack_id: str | int) -> str:
    """One exchange pack as shown to a student (pack-scoped only)."""
    return _build("studentExchangeDetail", pack_id)


def student_exchange_selection_key(pack_id: str | int) -> str:
    """The current student's selection for one exchange pack (pack-scoped only)."""
    return _build("studentExchangeSelections", pack_id)


def student_dashboard_counts_key(user_id: str | int) -> str:
    return _build("studentDashboardElectiveCounts", user_id)


def manager_course_detail_key(pack_id: str | int) -> str:
    """Course pack detail on the manager page (pack-scoped only)."""
    return _build("courseDetailData", pack_id)


def manager_course_selections_key(pack_id: str | int) -> str:
    """Student selections on the manager course page (pack-scoped only)."""
    return _build("courseSelectionsData", pack_id)


def manager_exchange_detail_key(pack_id: str | int) -> str:
    """Exchange pack detail on the manager page (pack-scoped only)."""
    return _build("exchangeDetailData", pack_id)


def manager_exchange_selections_key(pack_id: str | int) -> str:
    """Student selections on the manager exchange page (pack-scoped only)."""
    return _build("exchangeSelectionsData", pack_id)
