"""
Moteur de synchronisation côté appareil de scan (offline-first).

- pending_queue : file locale durable des présences non confirmées (SQLite)
- coordinator   : cycle de synchronisation file → serveur (un seul cycle à la fois)
- connectivity  : état réseau et déclenchement à la reconnexion
- recorder      : point d'entrée du scan (envoi direct ou mise en file)
- runner        : planification APScheduler des cycles
"""
