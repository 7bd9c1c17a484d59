import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
PRODUCT_ID = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Product stock ===")
if PRODUCT_ID:
    cur.execute("SELECT id, name, price, quantity FROM products WHERE id=?", (PRODUCT_ID,))
else:
    cur.execute("SELECT id, name, price, quantity FROM products ORDER BY id")
for r in cur.fetchall():
    print(r)

print("\n=== Recent Orders ===")
cur.execute(
    "SELECT id, user_id, total, status, address, created_at FROM orders ORDER BY id DESC LIMIT 20"
)
orders = cur.fetchall()
for r in orders:
    print(r)

print("\n=== Orders whose items do not add up to the total ===")
cur.execute(
    """
    SELECT o.id, o.total, COALESCE(SUM(i.price), 0) AS items_total, COUNT(i.id)
    FROM orders o LEFT JOIN order_items i ON i.order_id = o.id
    GROUP BY o.id, o.total
    HAVING COUNT(i.id) = 0 OR ABS(o.total - COALESCE(SUM(i.price), 0)) > 0.001
    """
)
for r in cur.fetchall():
    print(r)

if PRODUCT_ID:
    print(f"\n=== Units sold for product {PRODUCT_ID} ===")
    cur.execute(
        "SELECT COALESCE(SUM(quantity), 0) FROM order_items WHERE product_id=?",
        (PRODUCT_ID,),
    )
    print(cur.fetchone()[0])

conn.close()
