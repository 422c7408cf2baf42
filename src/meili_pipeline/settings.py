"""Runtime defaults read from the environment.

Environment variables:
  MEILI_ASSET_MODE: value emitted per related asset, url|id|title (default: url)
  MEILI_RELATION_MODE: label emitted per related record, title|slug|id (default: title)
  MEILI_BATCH_SIZE: records mapped per batch during a rebuild (default: 500)
  MEILI_DEFAULT_TRANSFORM_SOURCE: renderer used for unprefixed transform refs (default: craft)
"""

import os

ASSET_MODES = ("url", "id", "title")
RELATION_MODES = ("title", "slug", "id")

ASSET_MODE = os.getenv("MEILI_ASSET_MODE", "url")
RELATION_MODE = os.getenv("MEILI_RELATION_MODE", "title")
BATCH_SIZE = int(os.getenv("MEILI_BATCH_SIZE", "500"))
DEFAULT_TRANSFORM_SOURCE = os.getenv("MEILI_DEFAULT_TRANSFORM_SOURCE", "craft")
