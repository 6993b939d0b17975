"""Re-encode uploaded images into smaller, watermarked AVIF derivatives."""

__version__ = "0.1.0"
