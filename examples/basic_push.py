# litepush example
#
# Defines two models and pushes them to a SQLite file. Run it twice: the
# second push finds nothing to change. Add a field to Book and run it again
# to see the table rebuilt with its rows kept.
#
# Plain SQLite cannot add a reference to an existing table, so the first push
# into a new file runs in creation mode and declares references inline.

import logging
import os
import sqlite3
from typing import Annotated

from litepush import (
    ForeignKeyAction,
    PushOptions,
    IndexDef,
    PrimaryKey,
    References,
    TableConfigDict,
    TableModel,
    Unique,
    push_schema,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

DATABASE = os.getenv("LITEPUSH_DATABASE", "example.db")


class Author(TableModel):
    model_config = TableConfigDict(table_name="authors")

    id: Annotated[int, PrimaryKey()]
    name: str
    email: Annotated[str | None, Unique()] = None


class Book(TableModel):
    model_config = TableConfigDict(
        table_name="books",
        indexes=[IndexDef(name="books_title_idx", columns=["title"])],
    )

    id: Annotated[int, PrimaryKey()]
    title: str
    author_id: Annotated[int | None, References(Author, on_delete=ForeignKeyAction.CASCADE)] = None
    pages: int = 0


def main():
    options = PushOptions(creation_mode=not os.path.exists(DATABASE))
    connection = sqlite3.connect(DATABASE)
    try:
        plan = push_schema(connection, [Author, Book], options)
    finally:
        connection.close()

    print(plan.describe() if not plan.is_empty else "Schema already up to date")


if __name__ == "__main__":
    main()
