REDIS_META_KEY = "room:meta:{slug}" # room id - metadata hash, its TTL is the room's lifetime
REDIS_MESSAGES_KEY = "room:messages:{slug}" # room id - append-only list of JSON messages
REDIS_TOKEN_KEY = "room:token:{slug}" # room id - id (jti) of the capability token issued for the room
REDIS_ROOM_CHANNEL = "room:channel:{slug}" # room id - pub/sub channel name

# **Example `room:meta:{id}` hash fields**
# - `created_at` = ISO timestamp
# - `expires_at` = ISO timestamp (informational, the key TTL is authoritative)
# - `lifetime_seconds` = integer

# **TTL**
# - `room:meta:{id}` gets `ROOM_TTL_SECONDS` at creation and is never refreshed.
# - `room:messages:{id}` and `room:token:{id}` are re-aligned to the meta key's
#   remaining TTL on every post, so all three vanish together.
