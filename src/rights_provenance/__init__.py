"""
Rights Provenance - Event-sourced rights ledger with a verifiable chain of title

Issues territory- and platform-scoped rights over entertainment IP, moves them
only on the strength of a signature from the current holder, derives licenses,
and keeps a hash-linked chain of title that anyone can replay.

Fun fact: Film studios still employ "chain of title" researchers whose whole
job is reconstructing who owned a screenplay in 1962 from paper contracts.
"""

from rights_provenance.ledger import ProvenanceLedger

__version__ = "0.1.0"
__all__ = ["ProvenanceLedger", "__version__"]
