"""
Core forwarding components.

This package contains the delivery pipeline:
- Credential store and KMS token decryption
- Payload decoding, normalization and serialization
- Delivery engine and completion reporting
- Metrics collection
"""
