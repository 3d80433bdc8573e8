"""Confidential pronunciation-score client.

Scores are encrypted before they reach the record ledger and stay encrypted
until their owner asks for decryption. Cleartext is only trusted once the
ledger has checked a decryption proof and published it.
"""

__version__ = "0.1.0"
