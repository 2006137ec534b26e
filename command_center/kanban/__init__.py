# Kanban board: task records synced from markdown notes and live agents
#
# Components:
#   schema.py     - Data model (KanbanTask, TaskStatus, TaskPriority, Project, TaskSource)
#   store.py      - JSON file and in-memory persistence
#   extractor.py  - Markdown note → task candidates
#   projector.py  - Agent status feed → task candidates
#   sync.py       - Sync pass merging candidates into the store
#   mutations.py  - Create / move / update / delete
#   board.py      - Locked read/write service for the HTTP layer
