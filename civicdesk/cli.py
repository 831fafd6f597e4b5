"""CivicDesk CLI tool."""

import typer

app = typer.Typer(name="civicdesk", help="CivicDesk CLI")
db_app = typer.Typer(help="Database management commands")
rbac_app = typer.Typer(help="Role permission inspection commands")
app.add_typer(db_app, name="db")
app.add_typer(rbac_app, name="rbac")


@db_app.command("init")
def db_init():
    """Create all tables."""
    from civicdesk.db.session import init_db

    init_db()
    typer.echo("✅ Tables created (or already exist)")


@db_app.command("seed")
def db_seed():
    """Seed the super admin and pin role permissions to the catalog defaults."""
    from civicdesk.core.config import settings
    from civicdesk.db.session import SessionLocal
    from civicdesk.db.seeds.seed_super_admin import seed_super_admin
    from civicdesk.db.seeds.seed_role_permissions import seed_role_permissions
    from civicdesk.services.permission_catalog import get_catalog

    db = SessionLocal()
    try:
        if seed_super_admin(db):
            typer.echo(f"✅ Created super admin: {settings.SUPER_ADMIN_EMAIL}")
        else:
            typer.echo(f"ℹ️  Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        count = seed_role_permissions(db, get_catalog())
        typer.echo(f"✅ Seeded permissions for {count} roles")
    finally:
        db.close()


@rbac_app.command("roles")
def list_roles():
    """List catalog roles with their default permission counts."""
    from civicdesk.core.roles import ROLE_ALIASES
    from civicdesk.services.permission_catalog import get_catalog

    catalog = get_catalog()
    typer.echo(f"Permission matrix v{catalog.version}")
    for role in catalog.roles():
        aliases = sorted(alias for alias, target in ROLE_ALIASES.items() if target == role)
        suffix = f"  (aliases: {', '.join(aliases)})" if aliases else ""
        typer.echo(f"  {role}: {len(catalog.defaults_for(role))} permissions{suffix}")


@rbac_app.command("check")
def check_permission(
    role: str = typer.Argument(..., help="Role value as stored on a user (aliases allowed)"),
    permission: str = typer.Argument(..., help="Permission key, e.g. certificates.approve"),
):
    """Decide a permission for a role against the live overrides and delegation state."""
    from types import SimpleNamespace

    from civicdesk.db.session import SessionLocal
    from civicdesk.services.access_engine import AccessDecisionEngine
    from civicdesk.services.delegation_gate import DelegationGate
    from civicdesk.services.override_store import PermissionOverrideStore
    from civicdesk.services.permission_catalog import get_catalog

    db = SessionLocal()
    try:
        engine = AccessDecisionEngine(PermissionOverrideStore(db, get_catalog()), DelegationGate(db))
        decision = engine.authorize(SimpleNamespace(id=None, role=role), permission)
    finally:
        db.close()

    status = "ALLOW" if decision.allowed else "DENY"
    extra = " (delegated)" if decision.delegated else ""
    typer.echo(f"{status}{extra}: {decision.role} -> {permission}")
    raise typer.Exit(code=0 if decision.allowed else 1)


@rbac_app.command("matrix")
def show_matrix(
    csv: bool = typer.Option(False, "--csv", help="Print the module reachability CSV instead"),
):
    """Show default vs effective permissions per role."""
    from civicdesk.db.session import SessionLocal
    from civicdesk.services.access_matrix import AccessMatrixReporter
    from civicdesk.services.override_store import PermissionOverrideStore
    from civicdesk.services.permission_catalog import get_catalog

    db = SessionLocal()
    try:
        reporter = AccessMatrixReporter(PermissionOverrideStore(db, get_catalog()))
        if csv:
            typer.echo(reporter.export_csv(), nl=False)
            return
        for row in reporter.build_matrix():
            typer.echo(f"{row['role_label']}: {len(row['effective_permissions'])} effective")
            for p in row["added_permissions"]:
                typer.echo(f"    + {p}")
            for p in row["removed_permissions"]:
                typer.echo(f"    - {p}")
    finally:
        db.close()


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("civicdesk.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
