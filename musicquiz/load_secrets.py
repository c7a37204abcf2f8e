import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST")
port = os.getenv("DB_PORT")
db_name = os.getenv("DB_NAME")
db_backend = os.getenv("DB_BACKEND", "postgres")
sqlite_path = os.getenv("SQLITE_PATH", "musicquiz.sqlite3")
redis_host = os.getenv("REDIS_HOST", "redis")
redis_port = int(os.getenv("REDIS_PORT", "6379"))
buffer_job_ttl_seconds = int(os.getenv("BUFFER_JOB_TTL_SECONDS", "3600"))

if __name__ == "__main__":
    print(user, host, port, db_name, db_backend, redis_host, redis_port)
