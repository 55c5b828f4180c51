import math

from .dtos import PaginationDTO

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 36


def build_pagination(current_page: int, page_size: int, total_items: int) -> PaginationDTO:
    """Pagination block for one page of a listing; ``totalPages`` is 0 for an empty listing."""
    if page_size < 1:
        raise ValueError("page_size must be a positive integer")
    total_items = max(int(total_items or 0), 0)
    return PaginationDTO(
        currentPage=current_page,
        pageSize=page_size,
        totalItems=total_items,
        totalPages=math.ceil(total_items / page_size),
    )
