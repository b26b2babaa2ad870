"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that several features use
(DB wiring, settings, logging, caching, uploads, push delivery). Keep
feature-specific SQL and business logic in the corresponding feature
package (e.g. `bulk_import/`).
"""
