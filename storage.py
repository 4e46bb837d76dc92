"""SQLite storage gateway for products.

One connection is opened at startup and closed at shutdown. The blocking
sqlite3 calls run in the thread pool so route handlers stay async.
"""
import sqlite3
import threading
from typing import List, Optional, Union

import pydantic
from loguru import logger
from starlette.concurrency import run_in_threadpool

from errors import StorageError, ValidationError
from models import Product
from schemas import ProductCreate, ProductDelete

CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        quantity INTEGER NOT NULL
    )
"""


class ProductStore:
    def __init__(self, conn: sqlite3.Connection, path: str):
        self._conn = conn
        self.path = path
        # last insert rowid is tracked per connection
        self._insert_lock = threading.Lock()

    @classmethod
    def open(cls, path: str) -> "ProductStore":
        """Open (or create) the database file and make sure the table exists."""
        try:
            # isolation_level=None: autocommit, chaque requête est atomique
            conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute(CREATE_TABLE_SQL)
        except sqlite3.Error as e:
            logger.error(f"Error initializing database {path}: {e}")
            raise StorageError(f"cannot open database {path}") from e
        logger.info(f"Database initialized at {path}")
        return cls(conn, path)

    def close(self) -> None:
        self._conn.close()
        logger.info(f"Database {self.path} closed")

    async def list_products(self) -> List[Product]:
        return await run_in_threadpool(self._list_products)

    async def insert_product(
        self, name: Optional[str], quantity: Union[int, str, None]
    ) -> int:
        """Validate and persist a new product, returning its assigned id."""
        try:
            product = ProductCreate(name=name, quantity=quantity)
        except pydantic.ValidationError as e:
            raise ValidationError("name and quantity are required") from e
        return await run_in_threadpool(self._insert_product, product)

    async def delete_product(self, product_id: Union[int, str, None]) -> None:
        """Delete a product by id. Unknown ids are ignored."""
        try:
            target = ProductDelete(id=product_id)
        except pydantic.ValidationError as e:
            raise ValidationError("product id is required") from e
        if target.id is None:
            logger.info(f"Product id {product_id!r} matches no row, nothing to delete")
            return
        await run_in_threadpool(self._delete_product, target.id)

    def _list_products(self) -> List[Product]:
        try:
            rows = self._conn.execute(
                "SELECT id, name, quantity FROM products ORDER BY id"
            ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error fetching products: {e}")
            raise StorageError("cannot list products") from e
        return [Product(**dict(row)) for row in rows]

    def _insert_product(self, product: ProductCreate) -> int:
        try:
            with self._insert_lock:
                cur = self._conn.execute(
                    "INSERT INTO products (name, quantity) VALUES (?, ?)",
                    (product.name, product.quantity),
                )
                new_id = cur.lastrowid
        except sqlite3.Error as e:
            logger.error(f"Error inserting product {product.name!r}: {e}")
            raise StorageError("cannot insert product") from e
        logger.info(f"Product {product.name!r} added with ID {new_id}")
        return new_id

    def _delete_product(self, product_id: int) -> None:
        try:
            self._conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
        except sqlite3.Error as e:
            logger.error(f"Error deleting product {product_id}: {e}")
            raise StorageError("cannot delete product") from e
        logger.info(f"Product {product_id} deleted")
