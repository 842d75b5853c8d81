"""
Utility modules for the DOCX filling pipeline.

Organization:
- shared_constants: namespaces, defaults and error messages
- namespace_utils: folding parsed names back into their textual form
- xml_tokens: streaming XML decoder and encoder
"""

from .shared_constants import *
from .namespace_utils import fix_name, fix_ns, parse_qualified_name, qualified_name

__all__ = [
    'fix_name', 'fix_ns', 'qualified_name', 'parse_qualified_name',
]
