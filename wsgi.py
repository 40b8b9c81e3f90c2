import os
import sys
from dotenv import load_dotenv

project_home = os.path.abspath(os.path.dirname(__file__))

# Add to sys.path if not already
if project_home not in sys.path:
    sys.path.insert(0, project_home)

# === Load .env (supports both .env and .env.local) ===
for fname in ['.env', '.env.local']:
    dotenv_path = os.path.join(project_home, fname)
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)
        if __name__ == "__main__":
            print(f"Loaded {fname} from {dotenv_path}")

# === Import and Launch Flask App ===
from nowcapital import create_app

application = create_app()  # For WSGI/Gunicorn

if __name__ == "__main__":
    print("🔧 Running in standalone mode (development server)")
    print("NOWCAPITAL_BASE_URL =", os.getenv("NOWCAPITAL_BASE_URL") or "(default)")
    application.run(host="0.0.0.0", port=5000)
