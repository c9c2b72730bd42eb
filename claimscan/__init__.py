"""Claim document OCR processing system.

Batch pipeline that sends scanned claim documents to a hosted OCR
service, extracts labelled entities from the recognized text, and
tracks per-document status with aggregated batch progress.
"""
