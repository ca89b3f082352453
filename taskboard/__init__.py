# Task board: a single-user TODO / DOING / DONE board
#
# Components:
#   schema.py     - Data model (Task, TaskStatus, TaskPriority)
#   storage.py    - Key-value persistence (SQLite table or in-memory dict)
#   sources.py    - First-load fallback chain (storage → remote API / seed list)
#   events.py     - Change notifications from the store
#   store.py      - TaskStore: the single writer of the task list
#   controller.py - BoardController: column view + editor modal
#   config.py     - YAML / environment configuration
#   server.py     - Flask pages and JSON API
