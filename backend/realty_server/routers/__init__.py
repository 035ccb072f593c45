"""API route modules.

Each module exposes ``router: APIRouter`` and is mounted by
``realty_server.routing.load_route_table`` under its prefix:

- products          -> /api/products
- users             -> /api/users
- forms             -> /api/forms
- news              -> /api/news
- appointments      -> /api/appointments
- admin             -> /api/admin
- admin_properties  -> /api/properties
- property_listings -> /api
- lucky_draw        -> /api
"""
