# Command Center: operations dashboard backend
#
# Components:
#   config.py        - YAML + environment configuration
#   errors.py        - Exception taxonomy mapped to HTTP responses
#   kanban/          - Task board: schema, store, extractor, projector, sync, mutations
#   records.py       - JSON document collections (directives, feature requests, recovered tasks)
#   memory_notes.py  - Markdown memory notes listing
#   integrations/    - openclaw CLI, R2 object storage, LessonCraft catalog, ElevenLabs TTS
