"""
fincontrol_kernel -- ledger store, balance mutator and lifecycle services.

Layering (inner to outer):
    db/         engine, declarative base, column types
    domain/     clock, money rules, workflows, DTOs (no I/O)
    models/     ORM rows
    selectors/  read-only queries
    services/   transactional operations; the only writers of balances
                and bill / receivable status

Nothing in this package imports from fincontrol_batch or fincontrol_config.
"""
