"""Search engine adapters and the index location cache.

Primary components:
- ``base``: abstract ``SearchEngine`` / ``IndexHandle`` interface and ``ScoredDocument``.
- ``whoosh_engine``: Whoosh implementation of the interface.
- ``factory``: helpers to construct an engine from typed config.
- ``location_cache``: durable ``name -> location`` storage used for restart recovery.

Guidance:
- Prefer constructing via ``factory.create_search_engine`` so runtime
  services remain decoupled from specific backends.
"""
