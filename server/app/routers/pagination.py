from dataclasses import dataclass

from fastapi import Query

from app.config import settings


@dataclass
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> Page:
    return Page(page=page, limit=limit)
