"""branchstore: versioned blob publishing on git orphan branches."""

__version__ = "0.1.0"
