"""Core (UI-agnostic) prep dashboard logic.

This package contains:
- workbook parsing (XLSX bytes -> header-keyed records)
- date normalization (native dates, spreadsheet serials, strings)
- filter state and session handling
- aggregation and dashboard payloads (JSON-serializable)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
