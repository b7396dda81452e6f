DEFAULT_WATERMARK_URL = "https://media.fitbay.com/images/static/logo-transparent.png"

DENSITY_STANDARD = 1
DENSITY_RETINA = 2

LABEL_CORNER_RADIUS = 4
# Quadratic corner curves are flattened into this many segments
CURVE_SEGMENTS = 8

BRAND_LOGO_ASPECT = (190, 150)

# (offset, rgba) stops of the vertical separator line
SEPARATOR_WIDTH = 1
SEPARATOR_STOPS = (
    (0.0, "rgba(255, 255, 255, 0.1)"),
    (0.5, "rgba(0, 0, 0, 0.1)"),
    (1.0, "rgba(255, 255, 255, 0.1)"),
)

WATERMARK_MARGIN_RIGHT = 20
WATERMARK_MARGIN_BOTTOM = 10

ELLIPSIS = "..."

DIRECTION_SOUTH = "south"
DIRECTION_NORTH = "north"

LOCAL_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff"}
