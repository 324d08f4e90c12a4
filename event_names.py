# Inbound (client -> server)
JOIN_CHANNEL = "join-channel"
REQUEST_SPEAK = "request-speak"
RELEASE_SPEAK = "release-speak"

# Outbound (server -> client)
WELCOME = "welcome"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"
SPEAKER_CHANGED = "speaker-changed"

# Relayed in both directions under the same name
OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"

RELAY_EVENTS = (OFFER, ANSWER, ICE_CANDIDATE)

# Name of the payload field that carries the opaque negotiation data per relay kind
RELAY_PAYLOAD_FIELDS = {
    OFFER: "offer",
    ANSWER: "answer",
    ICE_CANDIDATE: "candidate",
}

# **Event flow**
# - join-channel   -> welcome (sender), user-joined (others), speaker-changed (sender, if floor held)
# - request-speak  -> speaker-changed (whole channel, only when granted)
# - release-speak  -> speaker-changed with nulls (whole channel, only when the sender held the floor)
# - offer/answer/ice-candidate {toUserId, ...} -> same event {fromUserId, ...} to toUserId only
# - disconnect     -> speaker-changed with nulls (if holder), user-left (others)
