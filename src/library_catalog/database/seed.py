"""
Sample data generator for the Library Catalog service.

Generates authors, categories, books, members and a loan history that
respect every catalog invariant:

- each book's ``available_copies`` equals ``total_copies`` minus its
  outstanding (ACTIVE or OVERDUE) loans
- no member holds more than ``max_active_loans`` outstanding loans, and only
  ACTIVE members hold any
- OVERDUE loans are exactly the outstanding ones due before ``today``

Output is deterministic for a given ``seed`` and ``today``.
"""

import logging
import random
from datetime import date, timedelta

from faker import Faker
from sqlalchemy.orm import Session

from .schema import (
    Author,
    Book,
    Category,
    Loan,
    LoanStatusEnum,
    Member,
    MembershipStatusEnum,
)

logger = logging.getLogger(__name__)

NATIONALITIES = [
    "American", "British", "Canadian", "Irish", "French",
    "German", "Italian", "Spanish", "Japanese", "Brazilian",
]

CATEGORY_NAMES = [
    "Fiction", "Mystery", "Science Fiction", "Fantasy", "Romance",
    "Biography", "History", "Science", "Philosophy", "Poetry",
    "Children's", "Young Adult",
]


def generate_isbn13(rng: random.Random) -> str:
    """Generate a valid ISBN-13 number."""
    isbn_without_check = f"978{rng.randint(0, 9)}{rng.randint(1000, 9999)}{rng.randint(1000, 9999)}"
    total = sum(int(digit) * (3 if i % 2 else 1) for i, digit in enumerate(isbn_without_check))
    check_digit = (10 - (total % 10)) % 10
    return f"{isbn_without_check}{check_digit}"


def generate_authors(fake: Faker, rng: random.Random, count: int) -> list[Author]:
    authors = []
    for _ in range(count):
        birth_year = rng.randint(1850, 1990)
        authors.append(
            Author(
                first_name=fake.first_name(),
                last_name=fake.last_name(),
                nationality=rng.choice(NATIONALITIES),
                birth_date=fake.date_between(
                    start_date=date(birth_year, 1, 1), end_date=date(birth_year, 12, 31)
                ),
                biography=fake.text(max_nb_chars=300),
            )
        )
    return authors


def generate_categories(fake: Faker, count: int) -> list[Category]:
    return [
        Category(name=name, description=fake.sentence(nb_words=8))
        for name in CATEGORY_NAMES[:count]
    ]


def generate_books(
    fake: Faker,
    rng: random.Random,
    authors: list[Author],
    categories: list[Category],
    count: int,
    today: date,
) -> list[Book]:
    """Books start with every copy on the shelf; loans take them out later."""
    books = []
    seen_isbns: set[str] = set()
    for _ in range(count):
        isbn = generate_isbn13(rng)
        while isbn in seen_isbns:
            isbn = generate_isbn13(rng)
        seen_isbns.add(isbn)

        total_copies = rng.randint(1, 8)
        book = Book(
            isbn=isbn,
            title=fake.catch_phrase().title(),
            description=fake.text(max_nb_chars=500),
            publication_date=fake.date_between(start_date=date(1900, 1, 1), end_date=today),
            total_copies=total_copies,
            available_copies=total_copies,
            author=rng.choice(authors),
        )
        if categories:
            book.categories = rng.sample(categories, k=rng.randint(1, min(3, len(categories))))
        books.append(book)
    return books


def generate_members(
    fake: Faker, rng: random.Random, count: int, today: date
) -> list[Member]:
    members = []
    for i in range(count):
        roll = rng.random()
        if roll < 0.8:
            status = MembershipStatusEnum.ACTIVE
        elif roll < 0.9:
            status = MembershipStatusEnum.SUSPENDED
        else:
            status = MembershipStatusEnum.EXPIRED

        first_name = fake.first_name()
        last_name = fake.last_name()
        members.append(
            Member(
                first_name=first_name,
                last_name=last_name,
                email=f"{first_name}.{last_name}.{i + 1}@example.com".lower(),
                phone=f"+1555{rng.randint(1000000, 9999999)}",
                address=fake.street_address(),
                membership_date=fake.date_between(
                    start_date=today - timedelta(days=1500), end_date=today
                ),
                status=status,
            )
        )
    return members


def generate_loans(
    fake: Faker,
    rng: random.Random,
    books: list[Book],
    members: list[Member],
    count: int,
    today: date,
    loan_period_days: int = 14,
    max_active_loans: int = 5,
) -> list[Loan]:
    """
    Generate a loan history and take copies out of ``books`` accordingly.

    About a half of the loans are returned; the rest stay outstanding and are
    OVERDUE when their due date has passed.
    """
    active_members = [m for m in members if m.status == MembershipStatusEnum.ACTIVE]
    if not active_members or not books:
        return []

    outstanding: dict[int, int] = {}
    loans = []
    for _ in range(count):
        member_index = rng.randrange(len(active_members))
        member = active_members[member_index]
        book = rng.choice(books)

        loan_date = today - timedelta(days=rng.randint(0, 60))
        due_date = loan_date + timedelta(days=loan_period_days)
        returned = rng.random() < 0.5

        if returned:
            return_date = min(today, loan_date + timedelta(days=rng.randint(1, 20)))
            status = LoanStatusEnum.RETURNED
        else:
            if book.available_copies <= 0 or outstanding.get(member_index, 0) >= max_active_loans:
                continue
            book.available_copies -= 1
            outstanding[member_index] = outstanding.get(member_index, 0) + 1
            return_date = None
            status = LoanStatusEnum.OVERDUE if due_date < today else LoanStatusEnum.ACTIVE

        loans.append(
            Loan(
                book=book,
                member=member,
                loan_date=loan_date,
                due_date=due_date,
                return_date=return_date,
                status=status,
                notes=fake.sentence(nb_words=6) if rng.random() < 0.3 else None,
            )
        )
    return loans


def seed_database(
    session: Session,
    today: date | None = None,
    num_authors: int = 20,
    num_categories: int = 8,
    num_books: int = 60,
    num_members: int = 25,
    num_loans: int = 40,
    loan_period_days: int = 14,
    max_active_loans: int = 5,
    seed: int = 42,
) -> dict[str, int]:
    """
    Populate an empty database with sample data and commit it.

    Returns:
        Number of rows created per entity
    """
    today = today or date.today()
    fake = Faker()
    fake.seed_instance(seed)
    rng = random.Random(seed)

    authors = generate_authors(fake, rng, num_authors)
    categories = generate_categories(fake, num_categories)
    books = generate_books(fake, rng, authors, categories, num_books, today)
    members = generate_members(fake, rng, num_members, today)
    loans = generate_loans(
        fake, rng, books, members, num_loans, today, loan_period_days, max_active_loans
    )

    session.add_all([*authors, *categories, *books, *members, *loans])
    session.commit()

    counts = {
        "authors": len(authors),
        "categories": len(categories),
        "books": len(books),
        "members": len(members),
        "loans": len(loans),
    }
    logger.info("Seeded database: %s", counts)
    return counts
