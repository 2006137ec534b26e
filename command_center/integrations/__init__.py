# External collaborators
#
#   openclaw.py     - openclaw CLI: sessions, cron jobs, agent spawn
#   r2.py           - Cloudflare R2 bucket listing and object proxy
#   lessoncraft.py  - LessonCraft catalog joined with R2 assets
#   voice.py        - ElevenLabs text-to-speech
