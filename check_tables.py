"""Check database tables"""
from database import engine, DATABASE_AVAILABLE
from sqlalchemy import inspect

print("=" * 60)
print("AFFIRMATE TABLE CHECK")
print("=" * 60)
print(f"Connection: {'OK' if DATABASE_AVAILABLE else 'FAILED'}")
if engine:
    print(f"Database URL: {engine.url.render_as_string(hide_password=True)}")
print()

if DATABASE_AVAILABLE and engine:
    inspector = inspect(engine)
    tables = inspector.get_table_names()
    print(f"Tables: {len(tables)}")
    print()
    for i, table in enumerate(tables, 1):
        print(f"  {i}. {table}")
        for col in inspector.get_columns(table):
            print(f"       - {col['name']} ({col['type']})")
        for index in inspector.get_indexes(table):
            unique = " unique" if index.get("unique") else ""
            print(f"       * {index['name']}{unique}: {', '.join(c for c in index['column_names'] if c)}")
        print()
else:
    print("[ERROR] No database connection")

print("=" * 60)
