"""
Storage Package.

Cloud storage backends behind small async interfaces.

Modules:
- errors: Vendor error translation
- object_store: Durable object storage (archive)
- warehouse: Columnar warehouse (tables, inserts, queries)
"""
