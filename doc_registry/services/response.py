class ListResponseMixin:
    """Wraps a service's ``list`` in the ``ListResponse`` envelope."""

    @classmethod
    def list_response(cls, db, *args, limit: int, offset: int, **kwargs) -> dict:
        items = cls.list(db, *args, limit=limit, offset=offset, **kwargs)
        return {"items": items, "count": len(items), "limit": limit, "offset": offset}
