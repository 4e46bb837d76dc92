"""HTML page for the product list."""
from html import escape
from typing import Sequence

from models import Product

PAGE_STYLE = """
    body { font-family: Arial, sans-serif; margin: 0; padding: 20px; background: #f2f2f2; }
    .container { max-width: 600px; margin: 0 auto; background: white; padding: 20px; border-radius: 5px; box-shadow: 0 0 10px rgba(0,0,0,0.1); }
    h1 { color: #333; }
    form { display: flex; gap: 10px; margin-bottom: 20px; flex-wrap: wrap; }
    input { flex: 1; padding: 10px; border: 1px solid #ddd; border-radius: 3px; min-width: 150px; }
    button[type="submit"] { flex: 0 0 auto; padding: 10px 20px; background: #4CAF50; color: white; border: none; border-radius: 3px; cursor: pointer; }
    .product-list { list-style: none; padding: 0; }
    .product-item { display: flex; justify-content: space-between; align-items: center; padding: 10px; margin: 10px 0; border: 1px solid #ddd; border-radius: 3px; background: #fafafa; }
    .product-item form { margin: 0; }
    .delete-button { background: #ff6347 !important; padding: 5px 10px !important; }
"""


def render_product(product: Product) -> str:
    return f"""
      <li class="product-item">
        <div><strong>{escape(product.name, quote=True)}</strong> - Qty: {int(product.quantity)}</div>
        <form action="/excluir_produto" method="post">
          <input type="hidden" name="productId" value="{int(product.id)}">
          <button type="submit" class="delete-button">Delete</button>
        </form>
      </li>"""


def render_page(products: Sequence[Product]) -> str:
    """Render the full inventory page.

    Product names are HTML-escaped; ids and quantities are integers and
    are embedded as-is.
    """
    if products:
        items = "".join(render_product(p) for p in products)
        listing = f'<ul class="product-list">{items}\n    </ul>'
    else:
        listing = '<p class="empty">No products registered</p>'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Product Manager</title>
  <style>{PAGE_STYLE}  </style>
</head>
<body>
  <div class="container">
    <h1>Product Manager</h1>

    <h2>Add New Product</h2>
    <form action="/adicionar_produto" method="post">
      <input type="text" name="productName" placeholder="Product name" required>
      <input type="number" name="productQuantity" placeholder="Quantity" min="1" required>
      <button type="submit">Add</button>
    </form>

    <h2>Products ({len(products)})</h2>
    {listing}
  </div>
</body>
</html>"""
