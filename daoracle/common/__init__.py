"""
Pure protocol pieces: identifiers, requests, judgments and envelopes.
"""
