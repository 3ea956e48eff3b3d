"""
SiteIntel - website crawl and business intelligence reports

This package implements the crawl pipeline:
- Renderer: drives headless Chromium to a stable page state
- Extractor: text corpus + structured page data from the rendered DOM
- Validator: schema checks for the structured record
- Report generator: eleven-section customer-perspective report via OpenAI
- Pipeline: sequences the stages and persists the resulting artifact
"""

__version__ = "0.1.0"
