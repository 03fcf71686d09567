from __future__ import annotations

import argparse
import getpass

from . import errors
from .auth_service import ensure_super_admin, list_all_users, set_active
from .config import Settings
from .db import Database
from .logging_config import configure_logging
from .seed import DEMO_EMAIL, DEMO_PASSWORD, seed_demo


def cmd_init(db: Database, args: argparse.Namespace) -> None:
    db.create_all()
    print("Banco inicializado.")


def cmd_create_super_admin(db: Database, args: argparse.Namespace) -> None:
    password = args.password or getpass.getpass("Senha do super admin: ")
    u, created = ensure_super_admin(db, args.email, password, name=args.name)
    if created:
        print(f"Super admin criado: {u.id} | {u.email}")
    else:
        print(f"Usuário já existia, papel garantido como super_admin: {u.id} | {u.email}")


def cmd_list_users(db: Database, args: argparse.Namespace) -> None:
    for u in list_all_users(db):
        flag = "ativo" if u.is_active else "inativo"
        print(f"{u.id} | {u.name} | {u.email} | {u.role.value} | {flag}")


def cmd_deactivate_user(db: Database, args: argparse.Namespace) -> None:
    u = set_active(db, args.email, active=args.reactivate)
    print(f"{u.email}: {'reativado' if u.is_active else 'desativado'}.")


def cmd_seed_demo(db: Database, args: argparse.Namespace) -> None:
    created = seed_demo(db)
    print(f"Seed concluído: {created} paciente(s) criado(s). Login demo: {DEMO_EMAIL} / {DEMO_PASSWORD}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="serena", description="CLI Serena (operação do backend)")
    p.add_argument("--database-url", default=None, help="Sobrescreve DATABASE_URL")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Cria as tabelas")
    p_init.set_defaults(func=cmd_init)

    p_sa = sub.add_parser("create-super-admin", help="Cria (ou promove) o super admin")
    p_sa.add_argument("--email", required=True)
    p_sa.add_argument("--name", default="Super Admin")
    p_sa.add_argument("--password", default=None, help="Se omitida, é pedida no terminal")
    p_sa.set_defaults(func=cmd_create_super_admin)

    p_list = sub.add_parser("list-users", help="Lista usuários")
    p_list.set_defaults(func=cmd_list_users)

    p_deact = sub.add_parser("deactivate-user", help="Desativa (soft delete) um usuário")
    p_deact.add_argument("--email", required=True)
    p_deact.add_argument("--reactivate", action="store_true", help="Reativa em vez de desativar")
    p_deact.set_defaults(func=cmd_deactivate_user)

    p_seed = sub.add_parser("seed-demo", help="Carrega dados de demonstração")
    p_seed.set_defaults(func=cmd_seed_demo)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)
    db = Database(args.database_url or settings.database_url)
    db.create_all()  # garante tabelas

    try:
        args.func(db, args)
    except errors.ServiceError as e:
        parser.exit(1, f"Erro: {e.message}\n")
    finally:
        db.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
