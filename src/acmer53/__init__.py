"""acmer53 -- ACME certificate client using Route53 DNS-01 validation."""

__version__ = "1.0.0"
