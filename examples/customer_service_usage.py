"""
Example: Running a YAML scenario batch against a small customer service.

The service owns its queries; dbscenario owns the arrange statements, the
act invocation, and the assertions. Both share one SQLite database file.
Record tags use the defining module, so run as a script the record is
``__main__.NewCustomer``.

Run from the repository root:
    python examples/customer_service_usage.py
"""

from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import create_engine

from dbscenario import Context, RunConfig, load_scenarios, run_suite

DB_PATH = Path("customers_example.db")


@dataclass
class NewCustomer:
    id: int
    name: str


class CustomerService:
    def __init__(self, url: str):
        self.engine = create_engine(url)

    def get(self, ctx: Context, customer_id: int) -> str:
        with self.engine.connect() as conn:
            row = conn.exec_driver_sql("SELECT name FROM customers WHERE id = ?", (customer_id,)).first()
        if row is None:
            raise LookupError(f"customer {customer_id} not found")
        return row[0]

    def create(self, ctx: Context, customer: NewCustomer) -> None:
        with self.engine.begin() as conn:
            conn.exec_driver_sql("INSERT INTO customers VALUES (?, ?)", (customer.id, customer.name))


if __name__ == "__main__":
    DB_PATH.unlink(missing_ok=True)
    url = f"sqlite:///{DB_PATH}"

    suite = load_scenarios(Path(__file__).with_name("customers.yaml"))
    service = CustomerService(url)
    try:
        result = run_suite(suite, service, config=RunConfig(database_url=url, log_level="DEBUG"))
        print(f"{result.count} scenario(s) passed in run {result.run_id}")
    finally:
        service.engine.dispose()
        DB_PATH.unlink(missing_ok=True)
