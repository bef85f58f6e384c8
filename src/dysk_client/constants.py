"""Constants for dysk-client."""

# Control channel
DEVICE_FILE = "/dev/dysk"

# All in/out commands expect buffers of exactly this size
IOCTL_IN_OUT_MAX = 2048

# Response status token marking a driver-side failure
ERROR_STATUS = "ERR"

# Payload sent with the list command
LIST_PAYLOAD = "-"

# Sizes
SECTOR_SIZE = 512
GIB = 1024 * 1024 * 1024

# Field bounds
MAX_NAME_LEN = 32
MAX_ACCOUNT_NAME_LEN = 256
MAX_ACCOUNT_KEY_LEN = 128
MAX_PATH_LEN = 1024
MAX_HOST_LEN = 512
MAX_LEASE_ID_LEN = 64

# Storage
DEFAULT_ENDPOINT_SUFFIX = "core.windows.net"
PAGE_BLOB_TYPE = "PageBlob"
LEASE_CHECK_METADATA = {"dysk": "dysk"}

# Configuration
CONFIG_ENV_VAR = "DYSK_CONFIG"
DEFAULT_COMMAND_TIMEOUT = 60.0
DEFAULT_LOCK_TIMEOUT = 30.0
