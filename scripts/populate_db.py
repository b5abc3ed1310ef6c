import os
import sys
import django
import random
from decimal import Decimal
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'print_marketplace.settings')
django.setup()

from core.exceptions import MarketplaceError
from core.models import User, Printer, Job
from core.services import get_services

fake = Faker()

MATERIALS = ['PLA', 'PETG', 'ABS', 'TPU', 'Nylon', 'Resin', 'Wood']

CITIES = [
    'San Francisco, CA', 'Austin, TX', 'New York, NY', 'Chicago, IL',
    'Seattle, WA', 'Denver, CO', 'Portland, OR', 'Boston, MA',
]

PRINTER_MODELS = [
    'Prusa MK4', 'Bambu X1 Carbon', 'Creality K1', 'Voron 2.4',
    'Ultimaker S5', 'Formlabs Form 3', 'Anycubic Kobra',
]


def create_users(num_customers=10, num_owners=6):
    print(f"Creating {num_customers} customers and {num_owners} printer owners...")

    customers = []
    owners = []

    for user_type, count, bucket in (('customer', num_customers, customers),
                                     ('printer_owner', num_owners, owners)):
        for _ in range(count):
            email = fake.unique.email()
            user = User.objects.create_user(
                username=email.split('@')[0][:30] + str(random.randint(100, 999)),
                email=email,
                password='password123',
                first_name=fake.first_name(),
                last_name=fake.last_name(),
                user_type=user_type,
            )
            bucket.append(user)

    print(f"Created {len(customers)} customers and {len(owners)} printer owners.")
    return customers, owners


def create_printers(owners):
    print("Creating printers...")
    printers = []

    for owner in owners:
        # Each owner runs 1-3 printers
        for _ in range(random.randint(1, 3)):
            printer = Printer.objects.create(
                owner=owner,
                name=f"{random.choice(PRINTER_MODELS)} ({fake.first_name()})",
                location=random.choice(CITIES),
                materials=random.sample(MATERIALS, random.randint(1, 4)),
                price_per_gram=Decimal(str(round(random.uniform(0.03, 0.25), 4))),
                status=random.choices(
                    [Printer.STATUS_AVAILABLE, Printer.STATUS_BUSY, Printer.STATUS_UNAVAILABLE],
                    weights=[6, 2, 1],
                )[0],
                rating=Decimal(str(round(random.uniform(3.0, 5.0), 2))),
                description=fake.sentence(nb_words=12),
            )
            printers.append(printer)

    print(f"Created {len(printers)} printers.")
    return printers


def create_jobs(customers, num_jobs=25):
    print(f"Creating {num_jobs} jobs...")
    jobs = []

    for _ in range(num_jobs):
        weight = Decimal(str(round(random.uniform(10, 500), 2)))
        job = Job.objects.create(
            customer=random.choice(customers),
            file_name=f"{fake.word()}_{fake.word()}.stl",
            material=random.choice(MATERIALS + ['']),
            estimated_weight=weight,
            estimated_cost=(weight * Decimal('0.10')).quantize(Decimal('0.01')),
            notes=random.choice(CITIES),
        )
        jobs.append(job)

    print(f"Created {len(jobs)} jobs.")
    return jobs


def create_bids(jobs, printers):
    print("Creating bids...")
    ledger = get_services().ledger
    created = 0
    refused = 0

    for job in jobs:
        candidates = [
            p for p in printers
            if p.owner_id != job.customer_id and (not job.material or p.supports_material(job.material))
        ]
        for printer in random.sample(candidates, min(len(candidates), random.randint(0, 6))):
            try:
                ledger.submit_bid(
                    job.id,
                    printer.owner_id,
                    printer.id,
                    amount=(printer.price_per_gram * job.estimated_weight).quantize(Decimal('0.01')) + 1,
                    estimated_days=random.randint(1, 10),
                    notes=fake.sentence(nb_words=8),
                )
                created += 1
            except MarketplaceError as e:
                # Bid cap and duplicate rules apply to seed data too
                refused += 1
                print(f"  Skipped bid on job {job.id}: {e.detail}")

    print(f"Created {created} bids ({refused} refused).")


def resolve_jobs(jobs):
    print("Accepting bids and progressing jobs...")
    services = get_services()
    accepted = 0

    for job in random.sample(jobs, len(jobs) // 2):
        listing = services.ledger.list_bids(job.id, job.customer_id)
        if not listing.bids:
            continue

        result = services.ledger.accept_bid(listing.bids[0].id, job.customer_id)
        accepted += 1

        owner_id = result.bid.bidder_id
        if random.random() < 0.6:
            services.lifecycle.update_status(job.id, owner_id, Job.STATUS_PRINTING)
            if random.random() < 0.6:
                services.lifecycle.update_status(job.id, owner_id, Job.STATUS_COMPLETED)

    print(f"Accepted {accepted} bids.")


def main():
    print("Starting database population...")

    customers, owners = create_users(num_customers=12, num_owners=8)

    printers = create_printers(owners)

    jobs = create_jobs(customers, num_jobs=30)

    create_bids(jobs, printers)

    resolve_jobs(jobs)

    print("Database population completed successfully!")

if __name__ == '__main__':
    main()
