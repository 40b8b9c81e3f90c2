from nowcapital import create_app
from nowcapital.errors import RemoteServiceError
from nowcapital.models import Credentials, Settings
from nowcapital.models.service.client import NowCapitalClient


def main():
    print("🧪 Running dev server...")

    # ✅ Check the API key against the service before serving anything
    try:
        credentials = Credentials.from_env()
    except ValueError as e:
        print(f"❌ {e}")
        return

    client = NowCapitalClient(credentials, Settings.from_env())
    try:
        client.check_credentials()
        print(f"✅ API key accepted by {credentials.base_url}")
    except RemoteServiceError as e:
        print("❌ Cannot reach NowCapital with this key:")
        print(str(e))  # only show clean error
        return
    finally:
        client.close()

    # ✅ Launch Flask app if the key is okay
    app = create_app()
    app.run(debug=True)


if __name__ == "__main__":
    main()
