"""affinity-intake: ligand x target run intake with dedup and association enrichment."""

__version__ = "0.1.0"
