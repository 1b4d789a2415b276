import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
PRODUCT = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Recent Orders ===")
cur.execute(
    "SELECT id, user_id, status, total_amount, order_date FROM orders ORDER BY order_date DESC LIMIT 20"
)
for r in cur.fetchall():
    print(r)

print("\n=== Recent Payments ===")
cur.execute(
    "SELECT id, order_id, status, amount, transaction_id FROM payments ORDER BY id DESC LIMIT 20"
)
for r in cur.fetchall():
    print(r)

print("\n=== Stock check (stock + units in non-cancelled orders) ===")
query = """
    SELECT p.id, p.slug, p.stock_quantity,
           COALESCE(SUM(CASE WHEN o.status != 'cancelled' THEN oi.quantity END), 0) AS sold
    FROM products p
    LEFT JOIN order_items oi ON oi.product_id = p.id
    LEFT JOIN orders o ON o.id = oi.order_id
    {where}
    GROUP BY p.id, p.slug, p.stock_quantity
    ORDER BY p.id
"""
if PRODUCT:
    cur.execute(query.format(where="WHERE p.id = ?"), (int(PRODUCT),))
else:
    cur.execute(query.format(where=""))
for pid, slug, stock, sold in cur.fetchall():
    flag = "  <-- NEGATIVE" if stock < 0 else ""
    print(f"product={pid} slug={slug} stock={stock} sold={sold} initial~={stock + sold}{flag}")

conn.close()
