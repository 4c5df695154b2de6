"""
ECM DocuSign adapter

Maps the ECM signature envelope port onto the DocuSign eSignature API.
"""

__version__ = "1.0.0"
