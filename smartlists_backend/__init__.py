"""
Shared SmartLists backend library code.

This package holds the external list aggregation layer used by the smart list
refresh pipeline:
- provider adapters under `integrations/`
- the per-batch aggregator under `ingestion/`

Entrypoints (CLI scripts) should live outside this package and import from
`smartlists_backend` rather than the other way around.
"""
