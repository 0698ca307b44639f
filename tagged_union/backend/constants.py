"""Target constants for the generated layouts.

All sizes are in bytes for a 64-bit target.
"""

TAG_BIT_WIDTH = 32
TAG_SIZE_BYTES = 4

POINTER_SIZE_BYTES = 8

BOOL_SIZE_BYTES = 1
CHAR_SIZE_BYTES = 4                     # Unicode scalar value, stored as u32

# Record field indices
RECORD_TAG_INDEX = 0
RECORD_KIND_INDEX = 1
