"""
streetcam — street-level imagery metadata for map viewports.

Entry point: python -m streetcam.main

Provides:
- Bounding box helpers, antimeridian split, visible-area union (geo)
- Photo, detection, cluster and segment entities plus search filters (model)
- requests-based service clients and the query grammar (ingest)
- Concurrent multi-type search, result merging, view-mode switching (handler)
- SQLite preference store (storage)
- PyQt5 event channel towards the map layer (gui)
"""
