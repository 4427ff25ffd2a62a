"""
Configuration for the flow engine and vision tools
Contains engine scheduling parameters and tool defaults
"""


class EngineConfig:
    """Configuration class for flow execution"""

    # ==================== Scheduling ====================
    # Worker threads used to run node bodies off the scheduler thread
    NODE_WORKER_THREADS = 2

    # How often the scheduler re-checks the cancellation token while a node runs
    CANCELLATION_POLL_S = 0.05

    # ==================== Performance ====================
    TARGET_PROCESSING_TIME_MS = 200

    # ==================== Flow Documents ====================
    DEFAULT_FLOW_NAME = "Default Flow"
    DEFAULT_FLOW_VERSION = "1.0"
    DEFAULT_SOURCE_PORT = "output"
    DEFAULT_TARGET_PORT = "input"

    # Context variable under which ROI-Apply publishes the processing mask
    ROI_MASK_VARIABLE = "roiMask"


class VisionToolDefaults:
    """Default parameters for vision tools when a node config omits them"""

    # ==================== Teach-Match ====================
    FEATURE_TYPE = "ORB"  # ORB, AKAZE or SIFT
    ORB_FEATURES = 1000
    MATCH_THRESHOLD = 0.7  # Second-nearest-neighbour ratio
    MIN_MATCHES = 10
    RANSAC_REPROJ_THRESHOLD = 5.0

    # ==================== Defect Detection ====================
    BINARY_THRESHOLD = 128
    MIN_AREA = 10.0
    MAX_AREA = 10000.0
    MORPHOLOGY_KERNEL = 3
    DETECT_WHITE = True
    DETECT_BLACK = True
    CIRCULARITY_MIN = 0.0
    CIRCULARITY_MAX = 1.0

    # ==================== Distance Measure ====================
    USE_EDGE_DETECTION = True
    EDGE_THRESHOLD = 50  # Canny low threshold, high = 2x
    EDGE_SEARCH_RADIUS = 20
    DEFAULT_UNIT = "px"

    # ==================== Overlay Colors (BGR) ====================
    COLOR_OK = (0, 255, 0)
    COLOR_NG = (0, 0, 255)
    COLOR_WHITE_SPOT = (0, 255, 255)
    COLOR_BLACK_SPOT = (0, 0, 255)
    COLOR_POINT = (255, 0, 0)
    COLOR_LABEL = (0, 255, 255)
