"""Page/limit helpers shared by the list endpoints."""
import math


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def pagination_info(page: int, limit: int, total: int) -> dict:
    """Pagination block returned next to every paged list."""
    return {
        "current": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "total": total,
        "limit": limit,
    }
