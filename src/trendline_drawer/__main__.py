from trendline_drawer.system.core.runner import main

raise SystemExit(main())
