import subprocess
import time
import sys
import os

def main():
    """
    Startup script for ArchViews.
    Running this script will launch:
    1. API Server (Port 8000)
    2. Console UI (Port 8501)
    3. Admin UI (Port 8502)
    """

    # Using sys.executable to ensure we use the same python environment
    # We assume this script is run from the project root
    api_cmd = [sys.executable, "-m", "uvicorn", "api.main:app", "--reload", "--port", "8000"]
    console_cmd = [sys.executable, "-m", "streamlit", "run", "UI/console.py", "--server.port", "8501"]
    admin_cmd = [sys.executable, "-m", "streamlit", "run", "UI/admin.py", "--server.port", "8502"]

    processes = []

    print("="*50)
    print("        ARCHVIEWS STARTING")
    print("="*50)

    try:
        print(f"[1/3] Launching API Server on port 8000...")
        p_api = subprocess.Popen(api_cmd, cwd=os.getcwd())
        processes.append(p_api)
        time.sleep(2) # Give API a moment to start

        print(f"[2/3] Launching Console UI on port 8501...")
        processes.append(subprocess.Popen(console_cmd, cwd=os.getcwd()))

        print(f"[3/3] Launching Admin UI on port 8502...")
        processes.append(subprocess.Popen(admin_cmd, cwd=os.getcwd()))

        print("\nAll services are running!")
        print("API:      http://localhost:8000/docs")
        print("Console:  http://localhost:8501")
        print("Admin:    http://localhost:8502")
        print("\nPress Ctrl+C to stop all services.")

        while True:
            time.sleep(1)
            for i, p in enumerate(processes):
                if p.poll() is not None:
                    print(f"\nProcess {i} exited with code {p.returncode}. Shutting down all services...")
                    return

    except KeyboardInterrupt:
        print("\n\nStopping all services...")
    finally:
        for p in processes:
            if p.poll() is None:
                p.terminate()
                try:
                    p.wait(timeout=2)
                except subprocess.TimeoutExpired:
                    p.kill()
        print("Services stopped successfully.")

if __name__ == "__main__":
    main()
