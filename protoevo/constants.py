"""Shape constants of the optical digits data and the prototype encoding."""

FEATURE_LEN = 64        # features per row
NUM_CLASSES = 10        # digit labels 0..9
MAX_FEATURE_VAL = 16    # features lie in [0, 16]
BLOCK_SIZE = 10         # rows per block, one of each class

GENE_LENGTH = NUM_CLASSES * FEATURE_LEN
