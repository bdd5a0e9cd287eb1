"""
Resumable Orders Export Example

Streams every document of the "orders" index in increasing (updated_at, id)
order and persists the cursor after each page, so a restarted run carries on
where the previous one stopped.

Run against a local cluster:
    OPENSEARCH_ENDPOINT=http://localhost:9200 python examples/resume_stream.py
"""

import json
import logging
import os
from pathlib import Path

from pitpager import (
    ConnectionOptions,
    CursorRepository,
    CursorSerde,
    RepositoryOptions,
    StreamOptions,
)

OFFSET_FILE = Path("orders.offset.json")

logging.basicConfig(level=logging.INFO)

serde = CursorSerde()
repository = CursorRepository.from_connection(
    ConnectionOptions(hosts=[os.getenv("OPENSEARCH_ENDPOINT", "http://localhost:9200")]),
    RepositoryOptions(page_size=500),
)

# Resume from the stored offset, or start from the smallest key
offset = json.loads(OFFSET_FILE.read_text()) if OFFSET_FILE.exists() else None
cursor = serde.from_offset(offset) or StreamOptions(
    index="orders",
    incrementing_field="updated_at",
    secondary_incrementing_field="id",
    secondary_sort=True,
).initial_cursor()

exported = 0
for page in repository.pages(cursor):
    for document in page.documents:
        print(document["es-id"], document["updated_at"])
    exported += page.count
    cursor = page.next_cursor
    OFFSET_FILE.write_text(json.dumps(serde.to_offset(cursor)))

print(f"\nExported {exported} documents, {cursor.running_document_count} in total")
repository.close_pit(cursor.pit_id)
