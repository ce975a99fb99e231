import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Per-user data directory: log file and default OVF dumps
DATA_DIR = Path(os.getenv("VAPP_PROPS_HOME", str(Path.home() / ".vapp-props")))
LOG_FILE = Path(os.getenv("VAPP_PROPS_LOG_FILE", str(DATA_DIR / "vapp_props.log")))
OVF_DUMP_DIR = Path(os.getenv("VAPP_PROPS_OVF_DIR", str(DATA_DIR / "ovf")))
VERBOSE = os.getenv("VAPP_PROPS_VERBOSE", "false").lower() == "true"

# --- vCloud Director session ---
# None negotiates the highest version both sides support
VCD_API_VERSION = os.getenv("VCD_API_VERSION") or None
TASK_TIMEOUT_S = int(os.getenv("VCD_TASK_TIMEOUT", "600"))
# Write the SDK's own request log here (empty = off)
VCD_SDK_LOG = os.getenv("VCD_SDK_LOG") or None

# --- sample walkthrough ---
PRODUCT_SECTION_ID = ""  # default ProductSection
PROPERTY_LABEL = "newStampLabel"
PROPERTY_KEY = "newStampKey"
