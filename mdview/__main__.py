from mdview.app import main

raise SystemExit(main())
