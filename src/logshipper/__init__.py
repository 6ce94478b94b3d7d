"""
logshipper - CloudWatch Logs → bulk HTTP listener forwarder

Decodes CloudWatch Logs subscription batches, normalizes each record and
delivers the batch to a Logz.io-style bulk listener, authenticating with a
KMS-encrypted customer token. Runs as an AWS Lambda function
(``logshipper.handler.lambda_handler``) or as a FastAPI service
(``logshipper.main:app``).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
