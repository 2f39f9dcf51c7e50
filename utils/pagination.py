# utils/pagination.py
from typing import Any, Dict, List

PAGE_WINDOW = 5


def page_numbers(page: int, total_pages: int, window: int = PAGE_WINDOW) -> List[int]:
    # up to `window` numbers centred on `page`, shifted to stay in range
    start = max(1, page - window // 2)
    end = start + window - 1
    if end > total_pages:
        end = total_pages
        start = max(1, end - window + 1)
    return list(range(start, end + 1))


def build_page_meta(page: int, per_page: int, total_records: int, shown: int) -> Dict[str, Any]:
    total_pages = max(1, (total_records + per_page - 1) // per_page)
    offset = (page - 1) * per_page
    # pages past the end still navigate inside the real range
    nav_page = min(page, total_pages)

    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_records": total_records,
        "start_index": offset + 1 if shown else 0,
        "end_index": min(offset + shown, total_records) if shown else 0,
        "prev_page": max(1, nav_page - 1),
        "next_page": min(total_pages, nav_page + 1),
        "page_numbers": page_numbers(nav_page, total_pages),
    }
