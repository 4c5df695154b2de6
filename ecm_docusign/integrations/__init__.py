"""
Integration modules for the ECM adapter

Contains adapters and clients for external systems:
- E-signature providers (DocuSign)
"""
