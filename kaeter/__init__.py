"""kaeter: versioning and release orchestration for modules living in a monorepo."""

__version__ = "0.1.0"
