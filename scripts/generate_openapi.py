"""Write the API's OpenAPI document, by default to ``docs/openapi.json``."""

from __future__ import annotations

import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from loxodon.main import create_application

DEFAULT_DESTINATION = ROOT / "docs" / "openapi.json"


def main(argv: list[str]) -> None:
    destination = Path(argv[0]) if argv else DEFAULT_DESTINATION
    document = create_application().openapi()
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(json.dumps(document, indent=2, sort_keys=True), encoding="utf-8")
    print(f"OpenAPI document for {document['info']['title']} written to {destination}")


if __name__ == "__main__":
    main(sys.argv[1:])
