from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from slugify import slugify
from sqlalchemy.orm import Session

from app.auth import roles as role_names
from app.auth.security import hash_password
from app.core.db import Base, SessionLocal, engine
from app.models.announcement import Announcement
from app.models.cell import Cell
from app.models.contribution import Contribution
from app.models.event import Event, EventAttendance, EventRegistration
from app.models.member import Member
from app.models.ministry import MemberMinistry, Ministry
from app.models.role import Role
from app.models.user import User

DEMO_PASSWORD = "Demo123!"

DEMO_USERS = [
    ("superadmin@example.com", "Super Admin", [role_names.SUPER_ADMIN]),
    ("admin@example.com", "System Admin", [role_names.ADMIN]),
    ("leader@example.com", "Cell Leader", [role_names.LEADER]),
    ("ministry@example.com", "Ministry Leader", [role_names.MINISTRY_LEADER]),
    ("events@example.com", "Event Organizer", [role_names.EVENT_ORGANIZER]),
    ("finance@example.com", "Finance Officer", [role_names.FINANCE]),
    ("treasurer@example.com", "Treasurer", [role_names.TREASURER]),
    ("content@example.com", "Content Creator", [role_names.CONTENT_CREATOR]),
    ("comms@example.com", "Communications", [role_names.COMMUNICATIONS]),
    ("member@example.com", "Abeba Tesfaye", [role_names.MEMBER]),
]

DEMO_CELLS = [
    {"name": "Bethel", "number": 1, "meeting_day": "WEDNESDAY", "location": "North Hall"},
    {"name": "Zion", "number": 2, "meeting_day": "FRIDAY", "location": "Room 12"},
    {"name": "Shiloh", "number": 3, "meeting_day": "SATURDAY", "location": "Fellowship Room"},
]

DEMO_MINISTRIES = [
    {"name": "Praise Team", "type": "WORSHIP", "meeting_schedule": "Thursdays 18:00"},
    {"name": "Youth Fellowship", "type": "YOUTH", "meeting_schedule": "Saturdays 16:00"},
    {"name": "Sunday School", "type": "CHILDREN", "meeting_schedule": "Sundays 09:00"},
    {"name": "Community Outreach", "type": "OUTREACH", "meeting_schedule": "First Saturday monthly"},
]

DEMO_MEMBERS = [
    {
        "first_name": "Abeba",
        "last_name": "Tesfaye",
        "email": "abeba.tesfaye@example.com",
        "phone": "+15550100001",
        "birth_date": date(1985, 3, 12),
        "gender": "FEMALE",
        "occupation": "Nurse",
        "cell": "Bethel",
        "ministries": {"Praise Team": "LEADER"},
        "user": "member@example.com",
    },
    {
        "first_name": "Dawit",
        "last_name": "Bekele",
        "email": "dawit.bekele@example.com",
        "phone": "+15550100002",
        "age": 19,
        "gender": "MALE",
        "occupation": "Student",
        "cell": "Zion",
        "ministries": {"Youth Fellowship": "MEMBER", "Praise Team": "MEMBER"},
    },
    {
        "first_name": "Hanna",
        "last_name": "Girma",
        "email": "hanna.girma@example.com",
        "phone": "+15550100003",
        "birth_date": date(1962, 11, 2),
        "gender": "FEMALE",
        "occupation": "Teacher",
        "cell": "Shiloh",
        "ministries": {"Sunday School": "LEADER"},
    },
    {
        "first_name": "Samuel",
        "last_name": "Haile",
        "email": "samuel.haile@example.com",
        "age": 34,
        "gender": "MALE",
        "occupation": "Engineer",
        "cell": "Bethel",
        "ministries": {"Community Outreach": "ASSISTANT"},
    },
    {
        "first_name": "Liya",
        "last_name": "Mekonnen",
        "email": "liya.mekonnen@example.com",
        "age": 15,
        "gender": "FEMALE",
        "cell": "Zion",
        "ministries": {"Youth Fellowship": "MEMBER"},
    },
]

CELL_LEADERS = {"Bethel": "abeba.tesfaye@example.com", "Shiloh": "hanna.girma@example.com"}


def ensure_role(db: Session, name: str) -> Role:
    role = db.query(Role).filter_by(name=name).first()
    if role is None:
        role = Role(name=name, description=role_names.ROLE_DESCRIPTIONS.get(name))
        db.add(role)
        db.commit()
        db.refresh(role)
    return role


def ensure_user(db: Session, email: str, full_name: str, password: str, roles: list[str]) -> User:
    user = db.query(User).filter_by(email=email).first()
    if user is None:
        user = User(
            email=email,
            full_name=full_name,
            hashed_password=hash_password(password),
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

    user.roles.clear()
    for role_name in roles:
        user.roles.append(ensure_role(db, role_name))
    db.commit()
    return user


def ensure_cells(db: Session) -> dict[str, Cell]:
    cells: dict[str, Cell] = {}
    for data in DEMO_CELLS:
        cell = db.query(Cell).filter_by(name=data["name"]).first()
        if cell is None:
            cell = Cell(**data)
            db.add(cell)
            db.flush()
        cells[data["name"]] = cell
    db.commit()
    return cells


def ensure_ministries(db: Session) -> dict[str, Ministry]:
    ministries: dict[str, Ministry] = {}
    for data in DEMO_MINISTRIES:
        slug = slugify(data["name"])
        ministry = db.query(Ministry).filter_by(slug=slug).first()
        if ministry is None:
            ministry = Ministry(slug=slug, **data)
            db.add(ministry)
            db.flush()
        ministries[data["name"]] = ministry
    db.commit()
    return ministries


def ensure_members(
    db: Session,
    cells: dict[str, Cell],
    ministries: dict[str, Ministry],
    users: dict[str, User],
) -> dict[str, Member]:
    members: dict[str, Member] = {}
    for data in DEMO_MEMBERS:
        fields = {key: value for key, value in data.items() if key not in {"cell", "ministries", "user"}}
        member = db.query(Member).filter_by(email=data["email"]).first()
        if member is None:
            member = Member(**fields, join_date=date(2023, 1, 15))
            db.add(member)
        member.cell = cells[data["cell"]]
        if data.get("user"):
            member.user = users[data["user"]]
        db.flush()

        for ministry_name, role in data["ministries"].items():
            ministry = ministries[ministry_name]
            membership = (
                db.query(MemberMinistry)
                .filter_by(member_id=member.id, ministry_id=ministry.id)
                .first()
            )
            if membership is None:
                db.add(MemberMinistry(member_id=member.id, ministry_id=ministry.id, role=role))
            if role == "LEADER":
                ministry.leader_id = member.id
        members[data["email"]] = member
    db.commit()

    for cell_name, leader_email in CELL_LEADERS.items():
        cells[cell_name].leader_id = members[leader_email].id
    db.commit()
    return members


def ensure_events(db: Session, ministries: dict[str, Ministry], members: dict[str, Member]) -> None:
    if db.query(Event).count():
        return
    today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    organizer = members["abeba.tesfaye@example.com"]
    schedule = [
        ("Sunday Service", "SERVICE", -14, None),
        ("Youth Retreat", "FELLOWSHIP", -40, "Youth Fellowship"),
        ("Leadership Workshop", "WORKSHOP", 10, None),
        ("Community Food Drive", "OUTREACH", 21, "Community Outreach"),
    ]
    for title, event_type, offset_days, ministry_name in schedule:
        day = today + timedelta(days=offset_days)
        event = Event(
            title=title,
            type=event_type,
            date=day,
            start_time=day.replace(hour=10),
            end_time=day.replace(hour=12),
            location="Main Sanctuary",
            max_attendees=50,
            registration_required=offset_days > 0,
            registration_deadline=day - timedelta(days=2) if offset_days > 0 else None,
            organizer_id=organizer.id,
            ministry_id=ministries[ministry_name].id if ministry_name else None,
        )
        db.add(event)
        db.flush()
        for member in members.values():
            if offset_days > 0:
                db.add(EventRegistration(event_id=event.id, member_id=member.id))
            else:
                db.add(EventAttendance(event_id=event.id, member_id=member.id, status="PRESENT"))
    db.commit()


def ensure_contributions(db: Session, members: dict[str, Member], recorder: User) -> None:
    if db.query(Contribution).count():
        return
    today = date.today()
    rows = [
        ("abeba.tesfaye@example.com", "TITHE", Decimal("120.00"), "BANK_TRANSFER", 5),
        ("dawit.bekele@example.com", "OFFERING", Decimal("20.00"), "CASH", 12),
        ("hanna.girma@example.com", "TITHE", Decimal("150.00"), "CHEQUE", 35),
        ("samuel.haile@example.com", "BUILDING_FUND", Decimal("500.00"), "CARD", 70),
        (None, "OFFERING", Decimal("45.50"), "CASH", 3),
    ]
    for email, contribution_type, amount, method, days_ago in rows:
        db.add(
            Contribution(
                amount=amount,
                type=contribution_type,
                payment_method=method,
                date=today - timedelta(days=days_ago),
                member_id=members[email].id if email else None,
                is_anonymous=email is None,
                recorded_by_id=recorder.id,
            )
        )
    db.commit()


def ensure_announcements(db: Session, members: dict[str, Member]) -> None:
    if db.query(Announcement).count():
        return
    now = datetime.utcnow()
    author = members["abeba.tesfaye@example.com"]
    db.add_all(
        [
            Announcement(
                title="Welcome to the new season",
                content="Join us this Sunday as we begin the new ministry season together.",
                priority="high",
                target_audience="all",
                publish_date=now - timedelta(days=1),
                is_published=True,
                author_id=author.id,
                attachments=[],
            ),
            Announcement(
                title="Youth camp registration",
                content="Registration for the summer youth camp closes at the end of the month.",
                priority="normal",
                target_audience="youth",
                publish_date=now - timedelta(hours=6),
                expiry_date=now + timedelta(days=30),
                is_published=True,
                author_id=author.id,
                attachments=[],
            ),
            Announcement(
                title="Building fund update",
                content="A detailed report on the building fund will be shared next month.",
                priority="low",
                target_audience="members",
                is_published=False,
                author_id=author.id,
                attachments=[],
            ),
        ]
    )
    db.commit()


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        users: dict[str, User] = {}
        for role_name in role_names.ALL_ROLES:
            ensure_role(db, role_name)
        for email, full_name, roles in DEMO_USERS:
            users[email] = ensure_user(db, email, full_name, DEMO_PASSWORD, roles)

        cells = ensure_cells(db)
        ministries = ensure_ministries(db)
        members = ensure_members(db, cells, ministries, users)
        ensure_events(db, ministries, members)
        ensure_contributions(db, members, users["treasurer@example.com"])
        ensure_announcements(db, members)
    finally:
        db.close()


if __name__ == "__main__":
    main()
