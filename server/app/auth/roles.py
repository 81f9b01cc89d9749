SUPER_ADMIN = "SUPER_ADMIN"
ADMIN = "ADMIN"
LEADER = "LEADER"
MEMBER = "MEMBER"
MINISTRY_LEADER = "MINISTRY_LEADER"
EVENT_ORGANIZER = "EVENT_ORGANIZER"
FINANCE = "FINANCE"
TREASURER = "TREASURER"
CONTENT_CREATOR = "CONTENT_CREATOR"
COMMUNICATIONS = "COMMUNICATIONS"

ALL_ROLES = (
    SUPER_ADMIN,
    ADMIN,
    LEADER,
    MEMBER,
    MINISTRY_LEADER,
    EVENT_ORGANIZER,
    FINANCE,
    TREASURER,
    CONTENT_CREATOR,
    COMMUNICATIONS,
)

ROLE_DESCRIPTIONS = {
    SUPER_ADMIN: "Full access including destructive operations",
    ADMIN: "Church office administrator",
    LEADER: "Cell or group leader",
    MEMBER: "Registered church member",
    MINISTRY_LEADER: "Leads one or more ministries",
    EVENT_ORGANIZER: "Plans and runs events",
    FINANCE: "Records and reviews contributions",
    TREASURER: "Owns the contribution ledger",
    CONTENT_CREATOR: "Drafts announcements",
    COMMUNICATIONS: "Publishes announcements",
}
