"""
Domain constants for the edit pipeline.
"""

# Magic tokens: hex string from this many random bytes
TOKEN_BYTES = 24

# Request header carrying the admin key
ADMIN_KEY_HEADER = "X-Admin-Key"

# Header accepted as an alternative transport for the magic token
MAGIC_TOKEN_HEADER = "X-Magic-Token"

# Push endpoint responses meaning the subscription will never accept deliveries again
GONE_STATUS_CODES = frozenset({410})

# Display markers for change records
EMPTY_MARKER = "(empty)"
REMOVED_MARKER = "(removed)"
BOOLEAN_LABELS = {True: "yes", False: "no"}
DATE_FORMAT = "%d/%m/%Y"

# Notification icons
NOTIFICATION_ICON = "/images/hello-big-dog.png"
NOTIFICATION_BADGE = "/images/hello-dog.png"
ENTITY_ICONS = {
    "dog": "🐕",
    "owner": "👤",
    "media": "📸",
}
ENTITY_TYPE_LABELS = {
    "dog": "Chien",
    "owner": "Humain",
    "media": "Média",
}

# Upload validation
PHOTO_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "heic", "avif"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "webm", "m4v"})

# Access policy: (entity kind, operation) -> minimum actor.
# "anonymous" admits anyone, "token" needs a valid magic token or admin, "admin" needs admin.
ACCESS_POLICY = {
    ("dog", "read"): "anonymous",
    ("dog", "create"): "token",
    ("dog", "update"): "token",
    ("dog", "delete"): "admin",
    ("owner", "read"): "anonymous",
    ("owner", "create"): "token",
    ("owner", "update"): "token",
    ("owner", "delete"): "admin",
    ("media", "read"): "anonymous",
    ("media", "create"): "anonymous",
    ("media", "update"): "token",
    ("media", "delete"): "admin",
}
