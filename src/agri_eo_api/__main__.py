from agri_eo_api.main import run

run()
