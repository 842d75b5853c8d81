"""
Shared constants used across the docfill application.
"""

# XML namespaces for DOCX processing
XML_NAMESPACES = {
    'w': 'http://schemas.openxmlformats.org/wordprocessingml/2006/main',
    'r': 'http://schemas.openxmlformats.org/officeDocument/2006/relationships',
    'xml': 'http://www.w3.org/XML/1998/namespace',
    'xmlns': 'http://www.w3.org/2000/xmlns/',
}

# Main document body part inside the container
DOCUMENT_XML = "word/document.xml"

# Text-run element that carries literal document text
TEXT_RUN_TAG = "w:t"

# Variable delimiters
DEFAULT_OPENING_BRACKET = "["
DEFAULT_CLOSING_BRACKET = "]"

# Tokens withheld while looking for a closing delimiter
DEFAULT_BUFFER_CAPACITY = 50

# Streaming chunk sizes
READ_CHUNK_SIZE = 64 * 1024
COPY_CHUNK_SIZE = 64 * 1024

# lxml limits for very large document parts
LXML_HUGE_TREE_ENABLED = True

# Exit codes
ERROR_CODES = {
    "SUCCESS": 0,
    "PROCESSING_FAILED": 1,
    "INVALID_ARGUMENTS": 2,
}

# Common Error Messages
ERROR_INVALID_DOCX = "Invalid DOCX document"
ERROR_TARGET_NOT_FOUND = "Invalid DOCX document: {name} not found in the archive"
ERROR_XML_PARSING = "XML parsing error"
ERROR_XML_WRITING = "XML writing error"
ERROR_DESTINATION_WRITE = "Failed to write destination archive"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
