import asyncio
import asyncpg
import os
from dotenv import load_dotenv
from app.database.schema import EXTENSIONS_SQL, TABLES_SQL, INDEXES_SQL

load_dotenv()

async def create_schema():
    conn = await asyncpg.connect(os.getenv('DATABASE_URL'))

    try:
        # Create extension for UUID
        await conn.execute(EXTENSIONS_SQL)

        # Create all tables
        await conn.execute(TABLES_SQL)
        print("✓ Tables created")

        for index_sql in INDEXES_SQL:
            await conn.execute(index_sql)
        print("✓ All indexes created")

        print("\n✅ Schema created successfully!")

    finally:
        await conn.close()

if __name__ == "__main__":
    asyncio.run(create_schema())
