"""Print a quick summary of what the cafe store currently holds."""

from cafe_directory.config import settings
from cafe_directory.data.store import create_store
from cafe_directory.records import SearchCriteria


def check_data():
    store = create_store(settings)
    print(f"Storage: {store.name}")
    print(f"Total cafes: {store.count_all()}")

    print("\nTop cities:")
    for city, count in store.city_counts(limit=10):
        print(f"  {city}: {count}")

    print("\nSample cafes:")
    for cafe in store.find_candidates(SearchCriteria(), limit=5):
        print(f"  {cafe.name} | {cafe.postcode} | {cafe.city} | ({cafe.latitude}, {cafe.longitude}) | rating={cafe.rating}")

    print("\nRecent imports:")
    for log in store.list_import_logs(limit=5):
        print(f"  {log.created_at} {log.filename}: {log.rows_success}/{log.rows_total} ({log.status.value})")


if __name__ == "__main__":
    check_data()
