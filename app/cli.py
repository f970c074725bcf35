"""CLI for Servis: create tables, seed demo data, list parked services."""

from __future__ import annotations

import argparse
import asyncio
import sys


async def cmd_init_db(args):
    """Create all tables in the configured database."""
    from app.db.engine import create_all
    from app.config import get_settings

    await create_all()
    print(f"Tables created in {get_settings().database_url}")


async def cmd_seed(args):
    """Seed a demo client, appliance, technician and one assigned service."""
    from app.db.engine import create_all, async_session_factory
    from app.db import crud
    from app.services import workflow

    await create_all()

    async with async_session_factory() as db:
        existing = await crud.list_clients(db)
        if any(c.full_name == "Demo Client" for c in existing):
            print("Demo data already exists, skipping seed.")
            return

        client = await crud.create_client(db, "Demo Client", "+38267000000", email="demo@example.com", city="Kotor")
        appliance = await crud.create_appliance(db, client.id, "Refrigerator", manufacturer="Beko", model="RCNA366")
        tech = await crud.create_technician(db, "Demo Technician", phone="+38267111111", specialization="Cooling")
        service = await workflow.create_service(db, client.id, appliance.id, "Fridge not cooling")
        service = await workflow.assign_technician(db, service.id, tech.id)

    print(f"Client:     {client.full_name} (id={client.id})")
    print(f"Technician: {tech.full_name} (id={tech.id})")
    print(f"Service:    #{service.id} [{service.status}]")


async def cmd_waiting(args):
    """Print services parked in waiting_parts with their outstanding orders."""
    from app.db.engine import create_all, async_session_factory
    from app.services import workflow

    await create_all()

    async with async_session_factory() as db:
        parked = await workflow.list_waiting_services(db)

    if not parked:
        print("No services are waiting for parts.")
        return

    for service, orders in parked:
        print(f"Service #{service.id} (technician={service.technician_id or '-'}): {service.description}")
        for o in orders:
            print(f"  order #{o.id} {o.status:<10} {o.quantity} x {o.part_name} [{o.urgency}]")


def main():
    parser = argparse.ArgumentParser(description="Servis CLI")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init-db", help="Create database tables")
    sub.add_parser("seed", help="Seed demo data")
    sub.add_parser("waiting", help="List services waiting for parts")

    args = parser.parse_args()

    commands = {
        "init-db": cmd_init_db,
        "seed": cmd_seed,
        "waiting": cmd_waiting,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    asyncio.run(handler(args))


if __name__ == "__main__":
    main()
