from producthunt_scraper.main import main

main()
