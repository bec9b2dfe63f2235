import math

DEFAULT_PAGE_SIZE = 20


class Paginator:
    """Page window over a list whose size is only known from the store.

    Movement methods return True when the page changed, so the owner knows
    to refetch; out-of-range moves are no-ops.
    """

    def __init__(self, page_size=DEFAULT_PAGE_SIZE, page=1, total_count=0):
        self.page_size = page_size
        self.page = page
        self.total_count = total_count

    @property
    def total_pages(self):
        # A page size of 0 means everything on one page
        if not self.page_size or self.page_size < 0:
            return 1
        return max(1, math.ceil(self.total_count / self.page_size))

    @property
    def has_next(self):
        return self.page < self.total_pages

    @property
    def has_prev(self):
        return self.page > 1

    def next_page(self):
        if not self.has_next:
            return False
        self.page += 1
        return True

    def prev_page(self):
        if not self.has_prev:
            return False
        self.page -= 1
        return True

    def go_to_page(self, page):
        if page < 1 or page > self.total_pages:
            return False
        self.page = page
        return True

    def clamp(self, items_on_page):
        """Step back one page when the current page emptied past the end."""
        if items_on_page == 0 and self.page > self.total_pages:
            self.page -= 1
            return True
        return False

    def window(self):
        """1-based (first, last) item positions shown on the current page."""
        if self.total_count == 0:
            return 0, 0
        if not self.page_size:
            return 1, self.total_count
        first = (self.page - 1) * self.page_size + 1
        return first, min(self.page * self.page_size, self.total_count)

    def as_dict(self):
        first, last = self.window()
        return {
            'page': self.page,
            'page_size': self.page_size,
            'total_count': self.total_count,
            'total_pages': self.total_pages,
            'first_item': first,
            'last_item': last,
        }
