"""Model equation libraries built on the ksengine core."""
