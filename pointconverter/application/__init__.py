"""Application layer: converters, store ports and the verification harness."""
