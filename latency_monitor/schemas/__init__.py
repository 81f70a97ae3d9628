"""Pydantic Schemas — validation at system boundaries (roster file, query params).

Invariants:
    - Schemas validate external input; core/ dataclasses are built from validated data

Design Decisions:
    - Separate from core types: schemas are input contracts, core types are the domain
"""
