from paper_architect.storage.records import Blueprint, Composition, RecordStore

__all__ = ["Blueprint", "Composition", "RecordStore"]
