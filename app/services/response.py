class ListResponseMixin:
    """Wraps a service's ``list`` into the paginated envelope used by the API.

    ``list`` implementations take ``limit`` and ``offset`` as their last two
    arguments.
    """

    @classmethod
    def list_response(cls, db, *args, **kwargs) -> dict:
        items = cls.list(db, *args, **kwargs)
        limit = kwargs.get("limit", args[-2] if len(args) >= 2 else None)
        offset = kwargs.get("offset", args[-1] if args else None)
        return {"items": items, "count": len(items), "limit": limit, "offset": offset}
