"""Print a fresh API key for the write endpoints."""
import uuid


def generate_api_key() -> str:
    return str(uuid.uuid4())


def main() -> None:
    print("=== YOUR API KEY ===")
    print(generate_api_key())
    print("=== ADD THIS TO YOUR .env FILE AS API_KEY ===")


if __name__ == "__main__":
    main()
