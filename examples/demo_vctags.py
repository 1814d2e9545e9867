"""CLI demo that runs one refresh of :class:`vctags.TagCache` and prints it.

Run with the virtual environment activated::

    python examples/demo_vctags.py

Set ``VCTAGS_VCENTER`` / ``VCTAGS_USERNAME`` / ``VCTAGS_PASSWORD`` to point at
your vCenter, and optionally ``VCTAGS_CATEGORIES`` to a comma separated list
of tag categories.
"""

import logging
import os
import sys
from pprint import pprint

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from vctags import Config, Context, TagCache

logging.basicConfig(level=logging.DEBUG)

def main() -> None:
    config = Config(insecure_skip_verify=True)
    cache = TagCache(config.endpoint(), config.timeout)
    categories = os.environ.get("VCTAGS_CATEGORIES", "")
    cache.set_category_filter([name.strip() for name in categories.split(",") if name.strip()])

    try:
        count = cache.refresh(Context())
    finally:
        cache.sessions.close()

    print(f"Fetched tags for {count} virtual machines")
    pprint(cache.snapshot())


if __name__ == "__main__":
    main()
