"""ScreenSync core source package.

This package contains the components of the reconciliation pipeline:
- session: screener session driver (Playwright export capture)
- browser: headless browser lifecycle
- extractor: CSV parsing and symbol projection
- reference: release feed retrieval and list normalization
- reconciler: order-preserving intersection
- writer: all-or-nothing artifact output
- pipeline: stage sequencing and outcome mapping
- models / exceptions / logger: data model, error taxonomy, logging
"""

__version__ = "1.0.0"
