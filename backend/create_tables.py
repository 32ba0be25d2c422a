import sys
import os
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv

from worthwatch.core.config import get_settings
from worthwatch.db import create_table, get_dynamodb_resource

def main():
    """Tabloyu ve tüm secondary index'leri oluşturur"""
    load_dotenv()
    settings = get_settings()
    create_table(get_dynamodb_resource(), settings.DDB_TABLE_NAME)
    print(f"Table {settings.DDB_TABLE_NAME} is ready.")

if __name__ == "__main__":
    main()
