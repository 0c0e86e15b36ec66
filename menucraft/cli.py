"""
MenuCraft Command Line Interface

Thin front end over the view-models, for managing restaurants, branches
and menus from a terminal.

Usage:
    menucraft login demo@menucraft.dev --password password
    menucraft restaurants list
    menucraft branches create <restaurant_id> --name "Downtown" ...
    menucraft menu create <restaurant_id> --title "Tiramisu" --price 7.5 \\
        --category Desserts --model dish.usdz

Run with ENV_MODE=development (the default) to use the mock backend.
"""

import argparse
import asyncio
import logging
import sys
from typing import Iterable, Optional, Sequence

from pydantic import ValidationError

from menucraft import __version__
from menucraft.core.config import get_settings, setup_logging
from menucraft.schemas import CreateBranchModel, CreateMenuItemModel, CreateRestaurantModel
from menucraft.services.network import get_network_service, reset_network_service
from menucraft.session import get_user_session, reset_user_session
from menucraft.viewmodels import (
    BranchViewModel,
    MenuViewModel,
    OperationResult,
    RestaurantViewModel,
)


def print_table(rows: Iterable[Sequence[object]], headers: Sequence[str]) -> None:
    rows = [[("" if value is None else str(value)) for value in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(value)) for w, value in zip(widths, row)]

    print("  ".join(h.ljust(w) for h, w in zip(headers, widths)))
    print("  ".join("-" * w for w in widths))
    for row in rows:
        print("  ".join(value.ljust(w) for value, w in zip(row, widths)))
    if not rows:
        print("(none)")


def fail(message: Optional[str]) -> int:
    print(f"❌ {message}", file=sys.stderr)
    return 1


def report(result: OperationResult, success: str) -> int:
    if not result.success:
        return fail(result.message)
    print(f"✅ {success}")
    return 0


def read_upload(path: Optional[str]) -> Optional[bytes]:
    if path is None:
        return None
    data = get_network_service().read_model_file(path)
    if data is None:
        raise SystemExit(fail(f"Cannot read file: {path}"))
    return data


# =============================================================================
# AUTH COMMANDS
# =============================================================================

async def cmd_login(args: argparse.Namespace) -> int:
    session = get_user_session()
    if not await session.login(args.email, args.password):
        return fail(session.error)
    print(f"✅ Logged in as {session.full_name} ({session.user.role})")
    return 0


async def cmd_register(args: argparse.Namespace) -> int:
    session = get_user_session()
    if not await session.register(args.first_name, args.last_name, args.email, args.password):
        return fail(session.error)
    print(f"✅ Registered and logged in as {session.full_name}")
    return 0


async def cmd_logout(args: argparse.Namespace) -> int:
    get_user_session().logout()
    print("✅ Logged out")
    return 0


async def cmd_whoami(args: argparse.Namespace) -> int:
    session = get_user_session()
    if not session.is_logged_in:
        return fail("Not logged in")
    user = session.user
    print(f"{session.full_name} <{user.email}>")
    print(f"   Role: {user.role}")
    print(f"   Restaurant: {user.restaurant_id or '-'}")
    print(f"   Branch: {user.branch_id or '-'}")
    return 0


# =============================================================================
# RESTAURANT COMMANDS
# =============================================================================

async def cmd_restaurants_list(args: argparse.Namespace) -> int:
    vm = RestaurantViewModel()
    if not await vm.fetch_restaurants():
        return fail(vm.error_message)
    print_table(
        ((r.id, r.name, r.cuisine, r.city, r.status) for r in vm.restaurants),
        ["ID", "NAME", "CUISINE", "CITY", "STATUS"],
    )
    return 0


async def cmd_restaurants_create(args: argparse.Namespace) -> int:
    restaurant = CreateRestaurantModel(
        name=args.name,
        cuisine=args.cuisine,
        address=args.address,
        city=args.city,
        state=args.state,
        zip_code=args.zip_code,
        phone=args.phone,
        email=args.email,
        website=args.website,
        description=args.description,
        status=args.status,
    )
    result = await RestaurantViewModel().create_restaurant(restaurant, image_data=read_upload(args.image))
    return report(result, f"Restaurant created: {result.value.id}" if result.success else "")


async def cmd_restaurants_delete(args: argparse.Namespace) -> int:
    result = await RestaurantViewModel().delete_restaurant(args.restaurant_id)
    return report(result, f"Restaurant {args.restaurant_id} deleted")


# =============================================================================
# BRANCH COMMANDS
# =============================================================================

async def cmd_branches_list(args: argparse.Namespace) -> int:
    vm = BranchViewModel()
    if not await vm.fetch_branches(args.restaurant_id):
        return fail(vm.error_message)
    print_table(
        ((b.id, b.name, b.city, b.weekday_hours, b.table_count, b.status) for b in vm.branches),
        ["ID", "NAME", "CITY", "WEEKDAY HOURS", "TABLES", "STATUS"],
    )
    return 0


async def cmd_branches_create(args: argparse.Namespace) -> int:
    branch = CreateBranchModel(
        name=args.name,
        restaurant_id=args.restaurant_id,
        address=args.address,
        city=args.city,
        state=args.state,
        zip_code=args.zip_code,
        phone=args.phone,
        email=args.email,
        opening_time=args.opening_time,
        closing_time=args.closing_time,
        table_count=args.table_count,
        include_default_menu=not args.no_default_menu,
    )
    result = await BranchViewModel().create_branch(branch, image_data=read_upload(args.image))
    return report(result, f"Branch created: {result.value.id}" if result.success else "")


async def cmd_branches_delete(args: argparse.Namespace) -> int:
    result = await BranchViewModel().delete_branch(args.branch_id)
    return report(result, f"Branch {args.branch_id} deleted")


# =============================================================================
# MENU COMMANDS
# =============================================================================

async def cmd_menu_list(args: argparse.Namespace) -> int:
    vm = MenuViewModel()
    if not await vm.fetch_menu_items(args.restaurant_id, branch_id=args.branch):
        return fail(vm.error_message)
    print_table(
        (
            (m.id, m.title, m.category, f"{m.price:.2f}", "yes" if m.has_model else "no", m.status)
            for m in vm.menu_items
        ),
        ["ID", "TITLE", "CATEGORY", "PRICE", "3D", "STATUS"],
    )
    return 0


async def cmd_menu_categories(args: argparse.Namespace) -> int:
    vm = MenuViewModel()
    await vm.fetch_categories(args.restaurant_id, branch_id=args.branch)
    for category in vm.categories:
        print(category)
    return 0


async def cmd_menu_create(args: argparse.Namespace) -> int:
    menu_item = CreateMenuItemModel(
        title=args.title,
        description=args.description,
        price=args.price,
        category=args.category,
        restaurant_id=args.restaurant_id,
        branch_id=args.branch,
        is_vegetarian=args.vegetarian,
        is_vegan=args.vegan,
        is_gluten_free=args.gluten_free,
        featured=args.featured,
    )
    result = await MenuViewModel().create_menu_item(menu_item, model_data=read_upload(args.model))
    return report(result, f"Menu item created: {result.value.id}" if result.success else "")


async def cmd_menu_delete(args: argparse.Namespace) -> int:
    vm = MenuViewModel()
    if not await vm.delete_menu_item(args.item_id):
        return fail(vm.error_message)
    print(f"✅ Menu item {args.item_id} deleted")
    return 0


async def cmd_menu_import(args: argparse.Namespace) -> int:
    result = await MenuViewModel().import_menu_items(args.restaurant_id, args.branch_id, args.item_ids)
    return report(result, f"Imported {len(result.value or [])} item(s) into {args.branch_id}")


# =============================================================================
# PARSER
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="menucraft", description="Restaurant & menu management client")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Log in and save the session")
    login.add_argument("email")
    login.add_argument("--password", required=True)
    login.set_defaults(handler=cmd_login)

    register = commands.add_parser("register", help="Create an owner account")
    register.add_argument("email")
    register.add_argument("--password", required=True)
    register.add_argument("--first-name", required=True)
    register.add_argument("--last-name", required=True)
    register.set_defaults(handler=cmd_register)

    commands.add_parser("logout", help="Forget the saved session").set_defaults(handler=cmd_logout)
    commands.add_parser("whoami", help="Show the current user").set_defaults(handler=cmd_whoami)

    # restaurants
    restaurants = commands.add_parser("restaurants", help="Manage restaurants")
    restaurant_commands = restaurants.add_subparsers(dest="action", required=True)
    restaurant_commands.add_parser("list").set_defaults(handler=cmd_restaurants_list)

    create = restaurant_commands.add_parser("create")
    create.add_argument("--name", required=True)
    create.add_argument("--cuisine", required=True)
    create.add_argument("--address", required=True)
    create.add_argument("--city", required=True)
    create.add_argument("--state", required=True)
    create.add_argument("--zip-code", required=True)
    create.add_argument("--phone", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--website", default="")
    create.add_argument("--description", default="")
    create.add_argument("--status")
    create.add_argument("--image", help="JPEG image to upload")
    create.set_defaults(handler=cmd_restaurants_create)

    delete = restaurant_commands.add_parser("delete")
    delete.add_argument("restaurant_id")
    delete.set_defaults(handler=cmd_restaurants_delete)

    # branches
    branches = commands.add_parser("branches", help="Manage branches")
    branch_commands = branches.add_subparsers(dest="action", required=True)
    branch_list = branch_commands.add_parser("list")
    branch_list.add_argument("restaurant_id")
    branch_list.set_defaults(handler=cmd_branches_list)

    create = branch_commands.add_parser("create")
    create.add_argument("restaurant_id")
    create.add_argument("--name", required=True)
    create.add_argument("--address", required=True)
    create.add_argument("--city", required=True)
    create.add_argument("--state", required=True)
    create.add_argument("--zip-code", required=True)
    create.add_argument("--phone", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--opening-time")
    create.add_argument("--closing-time")
    create.add_argument("--table-count", type=int)
    create.add_argument("--no-default-menu", action="store_true")
    create.add_argument("--image", help="JPEG image to upload")
    create.set_defaults(handler=cmd_branches_create)

    delete = branch_commands.add_parser("delete")
    delete.add_argument("branch_id")
    delete.set_defaults(handler=cmd_branches_delete)

    # menu
    menu = commands.add_parser("menu", help="Manage menu items")
    menu_commands = menu.add_subparsers(dest="action", required=True)
    for name, handler in (("list", cmd_menu_list), ("categories", cmd_menu_categories)):
        sub = menu_commands.add_parser(name)
        sub.add_argument("restaurant_id")
        sub.add_argument("--branch")
        sub.set_defaults(handler=handler)

    create = menu_commands.add_parser("create")
    create.add_argument("restaurant_id")
    create.add_argument("--branch")
    create.add_argument("--title", required=True)
    create.add_argument("--description", default="")
    create.add_argument("--price", type=float, required=True)
    create.add_argument("--category", required=True)
    create.add_argument("--vegetarian", action="store_true")
    create.add_argument("--vegan", action="store_true")
    create.add_argument("--gluten-free", action="store_true")
    create.add_argument("--featured", action="store_true")
    create.add_argument("--model", help="USDZ model to upload")
    create.set_defaults(handler=cmd_menu_create)

    delete = menu_commands.add_parser("delete")
    delete.add_argument("item_id")
    delete.set_defaults(handler=cmd_menu_delete)

    import_ = menu_commands.add_parser("import", help="Copy restaurant items into a branch")
    import_.add_argument("restaurant_id")
    import_.add_argument("branch_id")
    import_.add_argument("item_ids", nargs="+")
    import_.set_defaults(handler=cmd_menu_import)

    return parser


async def run(args: argparse.Namespace) -> int:
    try:
        return await args.handler(args)
    except ValidationError as e:
        return fail(f"Invalid input: {e.errors()[0]['msg']}")
    finally:
        await get_network_service().aclose()
        reset_user_session()
        reset_network_service()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        get_settings().debug = True
    setup_logging(logging.WARNING)

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
