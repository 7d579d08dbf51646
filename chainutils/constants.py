from os.path import dirname, join

ABI_DIR = join(dirname(__file__), 'abis')

ENHANCED_SHAPE = 'enhanced'
BASIC_SHAPE = 'basic'
