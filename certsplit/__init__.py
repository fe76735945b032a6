"""
Coverage Certificate Splitter
=============================
Splits a PDF of concatenated "SEGURO DE AUTOMOTORES / CERTIFICADO DE
COBERTURA" certificates into one PDF + JSON metadata pair per certificate.

Architecture:
    - Page Text: Plain text of every page, in order (PyMuPDF)
    - Segmenter: Partitions pages into certificate blocks
    - Field Extractor: Ordered regex rule chains with left-biased merge
    - Plate Filter: Optional keep/reject by vehicle plate
    - Slicer: Copies a page range into a standalone PDF
    - Engine: Runs the pipeline block by block and writes the outputs

Version: 1.0.0
"""

__version__ = "1.0.0"
