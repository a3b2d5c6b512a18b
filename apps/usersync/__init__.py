"""
User Sync App - Remote Student Records to Local Users

Responsibilities:
- Authenticate against the remote API (bearer token exchange)
- Fetch all student pages, or a single student by the external id kept in the
  user's local profile
- Write raw records to a timestamped JSONL file
- Validate records into user objects, skipping (and logging) records without
  an external id, without an email, or with an invalid email
- Upsert users into the local store and append one persistence log row per user

Output:
- raw_users/records_[YYYYMMDD_HHMMSS].jsonl
- SQLite tables: users, user_log

Usage:
    python -m apps.usersync
    python -m apps.usersync --user-id 42
"""
