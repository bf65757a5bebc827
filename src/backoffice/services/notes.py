"""Free-text notes appended to clients and inquiries."""

from backoffice.db.models import User, utcnow
from backoffice.schemas.common import Note


def append_note(existing: list, content: str, author: User) -> list:
    """Return a new notes list with one note added.

    JSON columns are replaced wholesale; mutating the list in place would
    not be detected by the ORM.
    """
    note = Note(content=content, created_by=str(author.id), created_at=utcnow())
    return [*(existing or []), note.model_dump(mode="json", by_alias=True)]
