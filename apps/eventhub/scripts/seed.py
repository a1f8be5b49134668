from __future__ import annotations

import argparse
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

from faker import Faker

from eventhub import queries
from eventhub.auth import hash_password
from eventhub.config import Config
from eventhub.db import init_db, runner_scope
from eventhub.models import SEAT_HOLDING_STATUSES
from eventhub.pricing import quote_price
from eventhub.tickets import allocate_ticket_number

CATEGORIES = ["conference", "workshop", "meetup", "webinar", "training"]
TAGS = ["python", "cloud", "data", "design", "security", "career", "ai", "devops"]
DEFAULT_PASSWORD = "password123"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed EventHub data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--companies", type=int, default=5, help="Number of companies")
    parser.add_argument("--users", type=int, default=60, help="Number of regular users")
    parser.add_argument("--events", type=int, default=40, help="Number of events")
    parser.add_argument("--registrations", type=int, default=400, help="Number of registrations")
    parser.add_argument("--reset", action="store_true", help="Delete existing DB before seeding")
    return parser.parse_args()


def _phone(faker: Faker) -> str:
    return f"+1 {faker.numerify('###-###-####')}"


def main() -> None:
    args = parse_args()
    random.seed(args.seed)
    faker = Faker()
    Faker.seed(args.seed)

    db_path = Path(Config.DB_PATH)
    if args.reset and db_path.exists():
        db_path.unlink()
    init_db()

    password_hash = hash_password(DEFAULT_PASSWORD)
    now = datetime.now(timezone.utc)

    with runner_scope() as runner, runner.transaction():
        company_ids = []
        for _ in range(args.companies):
            company_ids.append(
                queries.create_company(
                    runner,
                    {"name": faker.unique.company(), "industry": faker.bs().split()[-1], "website": faker.url()},
                )
            )

        admin_id = queries.create_user(
            runner,
            {"email": "admin@eventhub.io", "first_name": "Ada", "last_name": "Admin", "role": "admin"},
            password_hash,
        )
        managers = []
        for index, company_id in enumerate(company_ids, start=1):
            managers.append(
                (
                    queries.create_user(
                        runner,
                        {
                            "email": f"manager{index}@eventhub.io",
                            "first_name": faker.first_name(),
                            "last_name": faker.last_name(),
                            "phone": _phone(faker),
                            "role": "manager",
                            "company_id": company_id,
                            "job_title": "Event Manager",
                        },
                        password_hash,
                    ),
                    company_id,
                )
            )

        attendees = []
        for index in range(1, args.users + 1):
            first_name, last_name = faker.first_name(), faker.last_name()
            user_id = queries.create_user(
                runner,
                {
                    "email": f"user{index}@eventhub.io",
                    "first_name": first_name,
                    "last_name": last_name,
                    "phone": _phone(faker),
                    "company_id": random.choice(company_ids + [None]),
                    "department": random.choice(["Engineering", "Sales", "Marketing", "Finance", None]),
                },
                password_hash,
            )
            attendees.append((user_id, first_name, last_name, f"user{index}@eventhub.io"))

        events = []
        for _ in range(args.events):
            manager_id, company_id = random.choice(managers)
            start = now + timedelta(days=random.randint(-60, 120), hours=random.randint(8, 18))
            status = "completed" if start < now else random.choices(["published", "draft", "cancelled"], [0.8, 0.1, 0.1])[0]
            capacity = random.randint(20, 150)
            event_id = queries.create_event(
                runner,
                {
                    "title": f"{faker.catch_phrase()} {random.choice(CATEGORIES).title()}",
                    "description": faker.paragraph(nb_sentences=3),
                    "category": random.choice(CATEGORIES),
                    "location": f"{faker.city()}, {faker.state_abbr()}",
                    "start_date": start,
                    "end_date": start + timedelta(hours=random.randint(2, 8)),
                    "max_attendees": capacity,
                    "price_cents": random.choice([0, 2500, 4900, 9900, 19900, 29900]),
                    "requires_approval": random.random() < 0.15,
                    "tags": random.sample(TAGS, k=random.randint(1, 3)),
                    "company_id": company_id,
                },
                created_by=manager_id,
                status=status,
            )
            events.append({"id": event_id, "capacity": capacity, "held": 0, "status": status})

        registration_count = 0
        taken = set()
        for _ in range(args.registrations):
            event = random.choice([e for e in events if e["status"] != "draft"])
            user_id, first_name, last_name, email = random.choice(attendees)
            if (event["id"], user_id) in taken:
                continue
            taken.add((event["id"], user_id))

            seats = random.randint(1, 4)
            row = queries.get_event(runner, event["id"])
            quote = quote_price(
                row.price_cents,
                seats,
                random.choices(["standard", "vip", "early_bird"], [0.7, 0.1, 0.2])[0],
                random.choice([None, None, None, "EARLY20", "CORP15", "STUDENT10"]),
            )
            if event["held"] + seats > event["capacity"]:
                status = "waitlisted"
            else:
                status = random.choices(["confirmed", "pending", "cancelled"], [0.75, 0.15, 0.1])[0]
            payment_status = "paid" if status == "confirmed" and random.random() < 0.85 else "pending"

            queries.create_registration(
                runner,
                {
                    "event_id": event["id"],
                    "user_id": user_id,
                    "first_name": first_name,
                    "last_name": last_name,
                    "email": email,
                    "phone": _phone(faker),
                    "seats": seats,
                    "ticket_type": quote.ticket_type.value,
                    "coupon_code": quote.coupon_code,
                    "status": status,
                    "payment_status": payment_status,
                    "payment_method": "credit_card" if payment_status == "paid" else None,
                    "subtotal_cents": quote.subtotal_cents,
                    "discount_cents": quote.discount_cents,
                    "tax_cents": quote.tax_cents,
                    "amount_cents": quote.total_cents,
                    "currency": quote.currency,
                    "ticket_number": allocate_ticket_number(lambda n: queries.ticket_number_exists(runner, n)),
                    "checked_in": int(event["status"] == "completed" and status == "confirmed" and random.random() < 0.7),
                },
            )
            registration_count += 1
            if status in SEAT_HOLDING_STATUSES:
                event["held"] += seats

    print("Seed complete")
    print(f"Companies: {len(company_ids)}")
    print(f"Users: {len(attendees) + len(managers) + 1} (admin id {admin_id}, password '{DEFAULT_PASSWORD}')")
    print(f"Events: {len(events)}")
    print(f"Registrations: {registration_count}")
    total_capacity = sum(e["capacity"] for e in events)
    total_held = sum(e["held"] for e in events)
    print(f"Capacity used: {total_held}/{total_capacity}")


if __name__ == "__main__":
    main()
